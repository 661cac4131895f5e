import json
from typing import Any

from loguru import logger
from pydantic import ValidationError as ModelValidationError

from storefront_proxy.domain.errors import (
    MalformedResponseError,
    MissingDataError,
    NotFoundError,
    ReviewConflictError,
    UserInputError,
)
from storefront_proxy.domain.review import Review, ReviewList, ReviewsWritten

from .envelope import raise_for_user_errors
from .shopify_client import ShopifyGraphQLClient

PRODUCT_REVIEWS = """
  query productReviews($id: ID!, $namespace: String!, $key: String!) {
    product(id: $id) {
      id
      metafield(namespace: $namespace, key: $key) {
        id
        value
        compareDigest
      }
    }
  }
"""

METAFIELDS_SET = """
  mutation metafieldsSet($metafields: [MetafieldsSetInput!]!) {
    metafieldsSet(metafields: $metafields) {
      metafields {
        id
        compareDigest
      }
      userErrors { field message code }
    }
  }
"""

# Returned by metafieldsSet when compareDigest no longer matches
STALE_OBJECT = "STALE_OBJECT"


class ReviewRepository:
    """Stores a product's reviews as one JSON list in a metafield (Admin API).

    There is no per-review addressing: every write replaces the whole list.
    """

    def __init__(self, client: ShopifyGraphQLClient, namespace: str = "custom", key: str = "reviews") -> None:
        self._client = client
        self._namespace = namespace
        self._key = key

    def read(self, product_id: str) -> ReviewList:
        data = self._client.execute(
            PRODUCT_REVIEWS,
            {"id": product_id, "namespace": self._namespace, "key": self._key},
            operation="productReviews",
            idempotent=True,
        )
        product = data.get("product")
        if product is None:
            raise NotFoundError(f"Product {product_id} not found", product_id=product_id)

        metafield = product.get("metafield")
        if not metafield:
            return ReviewList(product_id=product_id)

        entries = self._load(product_id, metafield.get("value"))
        return ReviewList(
            product_id=product_id,
            reviews=self._parse(product_id, entries or []),
            compare_digest=metafield.get("compareDigest"),
            raw_entries=entries,
        )

    def write(self, product_id: str, reviews: list[Review], compare_digest: str | None = None) -> ReviewsWritten:
        """Replace the stored list.

        With ``compare_digest`` the write only succeeds if the metafield is
        unchanged since it was read.

        Raises:
            ReviewConflictError: the metafield changed since ``compare_digest`` was read.
            UserInputError: Shopify rejected the metafield.
        """
        entries = [r.model_dump(exclude_none=True) for r in reviews]
        return self._set(product_id, entries, compare_digest)

    def append(self, current: ReviewList, reviews: list[Review]) -> ReviewsWritten:
        """Add ``reviews`` after the stored entries, which are written back verbatim.

        Entries that could not be read as reviews are kept as they were.

        Raises:
            MalformedResponseError: the stored value is not a JSON list.
            ReviewConflictError: the metafield changed since ``current`` was read.
        """
        if current.raw_entries is None:
            raise MalformedResponseError(
                f"Reviews metafield of {current.product_id} is not a JSON list, refusing to overwrite it",
                product_id=current.product_id,
            )
        entries = [*current.raw_entries, *(r.model_dump(exclude_none=True) for r in reviews)]
        return self._set(current.product_id, entries, current.compare_digest)

    def _set(self, product_id: str, entries: list[Any], compare_digest: str | None) -> ReviewsWritten:
        metafield: dict = {
            "ownerId": product_id,
            "namespace": self._namespace,
            "key": self._key,
            "type": "json",
            "value": json.dumps(entries, ensure_ascii=False),
        }
        if compare_digest is not None:
            metafield["compareDigest"] = compare_digest

        data = self._client.execute(METAFIELDS_SET, {"metafields": [metafield]}, operation="metafieldsSet")
        payload = data.get("metafieldsSet")
        if payload is None:
            raise MissingDataError("Missing metafieldsSet in Shopify response", upstream="metafieldsSet")

        try:
            raise_for_user_errors(payload)
        except UserInputError as exc:
            if any(e.code == STALE_OBJECT for e in exc.user_errors):
                raise ReviewConflictError(upstream="metafieldsSet", product_id=product_id) from exc
            raise

        written = (payload.get("metafields") or [{}])[0] or {}
        logger.info(f"[Reviews] wrote {len(entries)} entries to {product_id}")
        return ReviewsWritten(
            product_id=product_id,
            count=len(entries),
            compare_digest=written.get("compareDigest"),
        )

    @staticmethod
    def _load(product_id: str, value: str | None) -> list[Any] | None:
        if not value:
            return []
        try:
            parsed = json.loads(value)
        except ValueError as exc:
            logger.warning(f"[Reviews] metafield of {product_id} is not valid JSON: {exc}")
            return None
        if not isinstance(parsed, list):
            logger.warning(f"[Reviews] metafield of {product_id} is not a list, ignoring it")
            return None
        return parsed

    @staticmethod
    def _parse(product_id: str, entries: list[Any]) -> list[Review]:
        reviews: list[Review] = []
        for entry in entries:
            if not isinstance(entry, dict):
                logger.warning(f"[Reviews] skipping non-object entry on {product_id}")
                continue
            # Older seed data used "author" instead of "name"
            if "name" not in entry and "author" in entry:
                entry = {**entry, "name": entry["author"]}
            try:
                reviews.append(Review.model_validate(entry))
            except ModelValidationError as exc:
                logger.warning(f"[Reviews] skipping malformed review on {product_id}: {exc.errors()[0]['msg']}")
        return reviews
