from datetime import date

from loguru import logger

from storefront_proxy.domain.review import Review, ReviewList, ReviewsWritten
from storefront_proxy.infrastructure.review_repository import ReviewRepository
from storefront_proxy.shared.decorators import error_context, log_errors

from .validation import require_id

SAMPLE_REVIEWS: tuple[Review, ...] = (
    Review(name="Alice W.", rating=5, content="Absolutely love the design and comfort. Highly recommend!"),
    Review(name="Ben K.", rating=4, content="Solid build and elegant finish. Delivery was quick too."),
    Review(name="Cindy L.", rating=5, content="Perfect chair for my study room. Looks amazing in velvet!"),
)


class ReviewService:
    """Product reviews kept as a single JSON list on the product."""

    def __init__(self, repository: ReviewRepository) -> None:
        self._repository = repository

    @log_errors
    def read_reviews(self, product_id: str) -> ReviewList:
        product_id = require_id("productId", product_id)
        with error_context("readReviews", product_id=product_id):
            return self._repository.read(product_id)

    @log_errors
    def write_reviews(
        self,
        product_id: str,
        reviews: list[Review],
        compare_digest: str | None = None,
    ) -> ReviewsWritten:
        """Replace the whole review list, in the given order."""
        product_id = require_id("productId", product_id)
        with error_context("writeReviews", product_id=product_id):
            return self._repository.write(product_id, list(reviews), compare_digest)

    @log_errors
    def add_review(self, product_id: str, review: Review) -> ReviewsWritten:
        """Append one review, refusing the write if someone else wrote in between.

        Stored entries are written back unchanged, including ones that do not
        read as reviews.

        Raises:
            ReviewConflictError: the list changed between the read and the write.
            MalformedResponseError: the stored value is not a JSON list.
        """
        product_id = require_id("productId", product_id)
        if not review.date:
            review = review.model_copy(update={"date": date.today().isoformat()})

        with error_context("addReview", product_id=product_id):
            current = self._repository.read(product_id)
            return self._repository.append(current, [review])

    @log_errors
    def seed_reviews(self, product_id: str) -> int:
        """Merge the sample reviews into the product; returns how many were added."""
        product_id = require_id("productId", product_id)
        today = date.today().isoformat()

        with error_context("seedReviews", product_id=product_id):
            current = self._repository.read(product_id)
            existing = {(r.name, r.content) for r in current.reviews}
            added = [
                sample.model_copy(update={"date": today})
                for sample in SAMPLE_REVIEWS
                if (sample.name, sample.content) not in existing
            ]
            if added:
                self._repository.append(current, added)

        logger.info(f"[Reviews] seeded {len(added)} review(s) on {product_id}")
        return len(added)
