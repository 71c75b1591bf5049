from typing import Optional
import logging

from django.db import IntegrityError, transaction
from django.db.models import Avg, Count

from core_backend.results import ErrorKind, ServiceResult
from products.models import Product
from .models import Review

logger = logging.getLogger(__name__)

DUPLICATE_REVIEW_MESSAGE = "You already reviewed this product"


class ReviewService:
    @staticmethod
    def get_product(product_id) -> ServiceResult:
        product = Product.objects.filter(pk=product_id, is_active=True).first()
        if product is None:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "Product not found")
        return ServiceResult.ok(product)

    @staticmethod
    def create_review(user, product_id, rating: int, comment: str = "") -> ServiceResult:
        found = ReviewService.get_product(product_id)
        if not found.success:
            return found
        product = found.data

        if Review.objects.filter(product=product, owner=user).exists():
            return ServiceResult.fail(ErrorKind.CONFLICT, DUPLICATE_REVIEW_MESSAGE)
        try:
            with transaction.atomic():
                review = Review.objects.create(product=product, owner=user, rating=rating, comment=comment or "")
        except IntegrityError:
            # Lost a race with a second submission from the same customer
            return ServiceResult.fail(ErrorKind.CONFLICT, DUPLICATE_REVIEW_MESSAGE)

        logger.info(f"Review {review.pk}: user {user.pk} rated product {product.pk} {rating}/5")
        return ServiceResult.ok(review, message="Review created successfully", status_code=201)

    @staticmethod
    def update_review(review: Review, rating: Optional[int] = None, comment: Optional[str] = None) -> ServiceResult:
        if rating is None and not comment:
            return ServiceResult.fail(ErrorKind.VALIDATION, "Comment or rating is required")

        changed = ["updated_at"]
        if rating is not None:
            review.rating = rating
            changed.append("rating")
        if comment:
            review.comment = comment
            changed.append("comment")
        review.save(update_fields=changed)
        return ServiceResult.ok(review, message="Review updated successfully")

    @staticmethod
    def delete_review(review: Review) -> ServiceResult:
        review_id = review.pk
        review.delete()
        logger.info(f"Review {review_id} deleted")
        return ServiceResult.ok(message="Review deleted successfully")

    @staticmethod
    def rating_summary(product: Product) -> dict:
        stats = Review.objects.filter(product=product).aggregate(average=Avg("rating"), count=Count("id"))
        average = stats["average"]
        return {
            "averageRating": round(float(average), 2) if average is not None else None,
            "reviewCount": stats["count"],
        }
