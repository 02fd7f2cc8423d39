from typing import List, Sequence

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.products.models.library import BoughtProduct, SavedProduct
from app.features.products.models.product import Product
from app.features.products.schemas.product import BoughtProductResponse
from app.platform.exceptions import ConflictError, NotFoundError, ValidationError


async def get_saved_product_ids(db: AsyncSession, user_id: str) -> List[str]:
    result = await db.execute(select(SavedProduct.product_id).where(SavedProduct.user_id == user_id))
    return list(result.scalars().all())


async def save_product(db: AsyncSession, user_id: str, product_id: str | None) -> SavedProduct:
    """Bookmark a product for the user. 404 for unknown products, 409 when already saved."""
    if not product_id:
        raise ValidationError("Product ID is required")

    if await db.get(Product, product_id) is None:
        raise NotFoundError("Product not found")

    existing = await db.execute(
        select(SavedProduct.id).where(SavedProduct.user_id == user_id, SavedProduct.product_id == product_id)
    )
    if existing.scalar_one_or_none():
        raise ConflictError("Product already saved")

    saved = SavedProduct(user_id=user_id, product_id=product_id)
    db.add(saved)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Product already saved")
    return saved


async def unsave_product(db: AsyncSession, user_id: str, product_id: str) -> None:
    result = await db.execute(
        delete(SavedProduct).where(SavedProduct.user_id == user_id, SavedProduct.product_id == product_id)
    )
    if result.rowcount == 0:
        await db.rollback()
        raise NotFoundError("Saved product not found")
    await db.commit()


async def get_bought_products(db: AsyncSession, user_id: str) -> List[BoughtProductResponse]:
    """Purchased products of the user, newest first."""
    result = await db.execute(
        select(BoughtProduct)
        .where(BoughtProduct.user_id == user_id)
        .order_by(BoughtProduct.created_at.desc())
    )
    rows: Sequence[BoughtProduct] = result.scalars().unique().all()
    return [
        BoughtProductResponse(
            id=row.id,
            product_id=row.product_id,
            product_title=row.product.title,
            product_description=row.product.description,
            price=row.product.price,
            order_id=row.order_id,
            bought_at=row.created_at,
        )
        for row in rows
    ]
