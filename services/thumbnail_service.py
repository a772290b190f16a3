"""
Product thumbnail service.

Lookup order for GET /api/thumbnail/<product_id>:
    1. Static thumbnail from products.json (unless a refresh is requested)
    2. Thumbnail cache
    3. Fresh Proof job with the product's default values and first size;
       page 1 is stored in the cache

A refresh invalidates the cache entry before regenerating, so the new
rendering overwrites the old one.
"""

from __future__ import annotations

from core.exceptions import NoImagesInOutputError
from models.job_result import ThumbnailResult, ThumbnailSource
from models.job_ticket import JobRequest
from models.product import ProductCatalog
from services.job_service import JobService
from services.thumbnail_cache import ThumbnailCache
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)


class ThumbnailService:
    """Serves product thumbnails from config, cache, or a fresh preview."""

    def __init__(self, catalog: ProductCatalog, job_service: JobService, cache: ThumbnailCache):
        self.catalog = catalog
        self.cache = cache
        self._job_service = job_service

    def get_thumbnail(self, product_id: str, refresh: bool = False) -> ThumbnailResult:
        """
        Thumbnail for a product.

        Args:
            product_id: Catalog product id
            refresh: Skip static/cached thumbnails and regenerate

        Raises:
            ProductNotFoundError: If the product is unknown
            CircuitOpenError, RemoteJobError: If generation is needed and fails
        """
        product = self.catalog.get(product_id)
        persistent = self.cache.is_durable()

        if refresh:
            self.cache.invalidate(product.id)
        else:
            if product.thumbnail:
                return ThumbnailResult(product.id, product.thumbnail, ThumbnailSource.STATIC, persistent)

            cached = self.cache.get(product.id)
            if cached is not None:
                return ThumbnailResult(product.id, cached.data, ThumbnailSource.CACHE, persistent)

        logger.info(f"Generating thumbnail for {product.id}")
        request = JobRequest(
            product_id=product.id,
            size_name=product.default_size.name,
            values=product.default_values(),
        )
        preview = self._job_service.generate_preview(request)
        if not preview.images:
            raise NoImagesInOutputError(0, job_id=preview.job_id)

        image = preview.images[0].data
        if self.cache.set(product.id, image) is None:
            logger.warning(f"Thumbnail for {product.id} generated but not cached")

        return ThumbnailResult(product.id, image, ThumbnailSource.GENERATED, persistent)

    def invalidate(self, product_id: str) -> bool:
        """
        Drop the cached thumbnail of a product.

        Raises:
            ProductNotFoundError: If the product is unknown
        """
        product = self.catalog.get(product_id)
        return self.cache.invalidate(product.id)
