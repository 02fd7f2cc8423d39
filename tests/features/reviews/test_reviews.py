import asyncio
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select

from app.features.products.models.product import Product
from app.features.reviews.models.review import ProductReview, Review
from app.features.reviews.schemas.review import ReviewResponse
from app.features.reviews.services.review_service import ReviewService
from app.platform.db.session import SessionLocal
from app.platform.exceptions import ConflictError


async def _product_rating(product_id):
    async with SessionLocal() as session:
        result = await session.execute(select(Product.rating).where(Product.id == product_id))
        return result.scalar_one()


async def _count(model):
    async with SessionLocal() as session:
        result = await session.execute(select(func.count()).select_from(model))
        return result.scalar_one()


def product_rating(product_id):
    return asyncio.run(_product_rating(product_id))


def count_rows(model):
    return asyncio.run(_count(model))


def submit(client, product_id, rating=5, comment="Beautiful arrangements"):
    return client.post("/api/v1/reviews", json={"productId": product_id, "rating": rating, "comment": comment})


class TestSubmitReview:
    def test_submit_review_returns_camel_case_review(self, auth_client, make_product):
        product = make_product()

        response = submit(auth_client, product.id, rating=4)

        assert response.status_code == 201
        review = response.json()["data"]
        assert review["productId"] == product.id
        assert review["userId"] == auth_client.user.id
        assert review["userName"] == "Olena Buyer"
        assert review["userInitials"] == "Ol"
        assert review["userAvatar"].startswith("https://ui-avatars.com/api/?name=Olena+Buyer")
        assert review["rating"] == 4
        assert review["comment"] == "Beautiful arrangements"
        assert "createdAt" in review
        assert product_rating(product.id) == pytest.approx(4.0)

    def test_rating_is_mean_of_all_reviews(self, client, make_user, make_product):
        product = make_product()
        for email, rating in (("a@example.com", 5), ("b@example.com", 4), ("c@example.com", 2)):
            _, token = make_user(email=email)
            response = client.post(
                "/api/v1/reviews",
                json={"productId": product.id, "rating": rating, "comment": "ok"},
                headers={"Authorization": f"Bearer {token}"},
            )
            assert response.status_code == 201

        assert product_rating(product.id) == pytest.approx(11 / 3)

    def test_second_review_by_same_user_conflicts(self, auth_client, make_product):
        product = make_product()
        assert submit(auth_client, product.id, rating=5).status_code == 201

        response = submit(auth_client, product.id, rating=1)

        assert response.status_code == 409
        assert response.json()["message"] == "You have already reviewed this product"
        assert count_rows(Review) == 1
        assert product_rating(product.id) == pytest.approx(5.0)

    @pytest.mark.parametrize("rating", [0, 6, "abc", 2.5, True])
    def test_invalid_rating_is_rejected(self, auth_client, make_product, rating):
        product = make_product()

        response = submit(auth_client, product.id, rating=rating)

        assert response.status_code == 400
        assert response.json()["message"] == "Rating must be between 1 and 5"
        assert count_rows(Review) == 0

    @pytest.mark.parametrize(
        "payload",
        [
            {"rating": 5, "comment": "no product"},
            {"productId": "p", "comment": "no rating"},
            {"productId": "p", "rating": 5, "comment": "   "},
        ],
    )
    def test_missing_fields(self, auth_client, payload):
        response = auth_client.post("/api/v1/reviews", json=payload)

        assert response.status_code == 400
        assert response.json()["message"] == "Product ID, rating, and comment are required"

    def test_unknown_product(self, auth_client):
        response = submit(auth_client, "00000000-0000-0000-0000-000000000000")

        assert response.status_code == 404
        assert response.json()["message"] == "Product not found"
        assert count_rows(Review) == 0

    def test_requires_authentication(self, client, make_product):
        product = make_product()

        response = submit(client, product.id)

        assert response.status_code == 401

    def test_unique_constraint_conflict_leaves_state_untouched(self, auth_client, make_product):
        product = make_product()
        assert submit(auth_client, product.id, rating=5).status_code == 201

        # a concurrent writer can pass the existence check before the first commit lands
        with patch.object(ReviewService, "_already_reviewed", AsyncMock(return_value=False)):
            response = submit(auth_client, product.id, rating=1)

        assert response.status_code == 409
        assert response.json()["message"] == "You have already reviewed this product"
        assert count_rows(Review) == 1
        assert count_rows(ProductReview) == 1
        assert product_rating(product.id) == pytest.approx(5.0)

    def test_concurrent_submissions_keep_rating_equal_to_mean(self, make_user, make_product):
        product = make_product()
        ratings = [5, 1, 4, 2, 3, 5]
        users = [make_user(email=f"reviewer{index}@example.com")[0] for index in range(len(ratings))]

        async def submit_one(user, rating):
            async with SessionLocal() as session:
                return await ReviewService(session).submit_review(user, product.id, rating, "concurrent")

        async def submit_all():
            return await asyncio.gather(
                *[submit_one(user, rating) for user, rating in zip(users, ratings)],
                return_exceptions=True,
            )

        results = asyncio.run(submit_all())

        assert all(isinstance(result, ReviewResponse) for result in results), results
        assert count_rows(ProductReview) == len(ratings)
        assert product_rating(product.id) == pytest.approx(sum(ratings) / len(ratings))

    def test_concurrent_duplicates_from_one_user_store_a_single_review(self, make_user, make_product):
        product = make_product()
        user, _ = make_user()

        async def submit_one(rating):
            async with SessionLocal() as session:
                return await ReviewService(session).submit_review(user, product.id, rating, "twice")

        async def submit_all():
            return await asyncio.gather(*[submit_one(rating) for rating in (5, 1, 3)], return_exceptions=True)

        results = asyncio.run(submit_all())

        accepted = [result for result in results if isinstance(result, ReviewResponse)]
        conflicts = [result for result in results if isinstance(result, ConflictError)]
        assert len(accepted) == 1
        assert len(conflicts) == 2
        assert count_rows(Review) == 1
        assert product_rating(product.id) == pytest.approx(accepted[0].rating)


class TestDeleteReview:
    def test_delete_recomputes_rating(self, client, make_user, make_product):
        product = make_product()
        _, first_token = make_user(email="first@example.com")
        _, second_token = make_user(email="second@example.com")
        first = client.post(
            "/api/v1/reviews",
            json={"productId": product.id, "rating": 5, "comment": "great"},
            headers={"Authorization": f"Bearer {first_token}"},
        ).json()["data"]
        second = client.post(
            "/api/v1/reviews",
            json={"productId": product.id, "rating": 2, "comment": "meh"},
            headers={"Authorization": f"Bearer {second_token}"},
        ).json()["data"]

        response = client.delete(f"/api/v1/reviews/{first['id']}", headers={"Authorization": f"Bearer {first_token}"})
        assert response.status_code == 200
        assert product_rating(product.id) == pytest.approx(2.0)

        client.delete(f"/api/v1/reviews/{second['id']}", headers={"Authorization": f"Bearer {second_token}"})
        assert product_rating(product.id) == 0
        assert count_rows(Review) == 0
        assert count_rows(ProductReview) == 0

    def test_cannot_delete_someone_elses_review(self, client, make_user, make_product):
        product = make_product()
        _, owner_token = make_user(email="owner@example.com")
        _, other_token = make_user(email="other@example.com")
        review = client.post(
            "/api/v1/reviews",
            json={"productId": product.id, "rating": 3, "comment": "fine"},
            headers={"Authorization": f"Bearer {owner_token}"},
        ).json()["data"]

        response = client.delete(f"/api/v1/reviews/{review['id']}", headers={"Authorization": f"Bearer {other_token}"})

        assert response.status_code == 404
        assert response.json()["message"] == "Review not found or access denied"
        assert count_rows(Review) == 1
        assert product_rating(product.id) == pytest.approx(3.0)

    def test_delete_unknown_review(self, auth_client):
        response = auth_client.delete("/api/v1/reviews/missing")
        assert response.status_code == 404


class TestListReviews:
    def test_list_by_product_and_user(self, auth_client, make_product):
        song = make_product(title="Song")
        album = make_product(title="Album")
        submit(auth_client, song.id, rating=5)
        submit(auth_client, album.id, rating=3)

        by_product = auth_client.get(f"/api/v1/reviews/product/{song.id}").json()["data"]
        by_user = auth_client.get(f"/api/v1/reviews/user/{auth_client.user.id}").json()["data"]

        assert [review["rating"] for review in by_product] == [5]
        assert {review["productId"] for review in by_user} == {song.id, album.id}

    def test_empty_listing(self, client):
        response = client.get("/api/v1/reviews/product/nothing")

        assert response.status_code == 200
        assert response.json()["data"] == []
