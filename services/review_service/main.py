from fastapi import FastAPI, HTTPException, status, Request
from datetime import datetime
from typing import List

from shared.utils import (
    get_db_client, SuccessResponse, HealthResponse, NotFoundException, check_database
)
from shared.logging_config import setup_logging, RequestLoggingMiddleware
from shared.security_config import setup_edge_middleware, limiter, DEFAULT_LIMIT
from shared.repository import DocumentRepository

from services.review_service.schemas import ReviewCreate, ReviewUpdate, ReviewResponse, RatingSummary
from services.review_service.models import ReviewDB, TargetType

SERVICE_NAME = "review-service"

# Setup Logging
logger = setup_logging(SERVICE_NAME)

app = FastAPI(title="Ratings and Reviews Service")
setup_edge_middleware(app)
app.add_middleware(RequestLoggingMiddleware, service_name=SERVICE_NAME)

@app.on_event("startup")
async def startup_db_client():
    app.mongodb_client = get_db_client()
    app.mongodb = app.mongodb_client.reviews_db
    # Indexes
    await app.mongodb.reviews.create_index([("target_id", 1), ("target_type", 1)])
    await app.mongodb.reviews.create_index("customer_id")

@app.on_event("shutdown")
async def shutdown_db_client():
    app.mongodb_client.close()

def reviews() -> DocumentRepository[ReviewDB]:
    return DocumentRepository(app.mongodb.reviews, ReviewDB)

def to_response(review: ReviewDB) -> ReviewResponse:
    return ReviewResponse(**review.dict())

# --- Endpoints ---
@app.post("/reviews", response_model=SuccessResponse[ReviewResponse])
@limiter.limit(DEFAULT_LIMIT)
async def add_review(review_in: ReviewCreate, request: Request):
    review = ReviewDB(**review_in.dict())
    await reviews().insert(review)
    logger.info("Review added", extra={"review_id": review.id, "customer_id": review.customer_id})
    return SuccessResponse(data=to_response(review), message="Review added")

@app.get("/reviews/target/{target_type}/{target_id}", response_model=SuccessResponse[List[ReviewResponse]])
@limiter.limit(DEFAULT_LIMIT)
async def get_reviews_by_target(target_type: TargetType, target_id: str, request: Request):
    found = await reviews().find(sort="created_at", target_id=target_id, target_type=target_type.value)
    return SuccessResponse(data=[to_response(r) for r in found])

@app.get("/reviews/target/{target_type}/{target_id}/rating", response_model=SuccessResponse[RatingSummary])
async def get_rating_summary(target_type: TargetType, target_id: str):
    found = await reviews().find(target_id=target_id, target_type=target_type.value)
    average = round(sum(r.rating for r in found) / len(found), 2) if found else 0.0
    return SuccessResponse(data=RatingSummary(
        target_id=target_id,
        target_type=target_type,
        average_rating=average,
        review_count=len(found)
    ))

@app.get("/reviews/customer/{customer_id}", response_model=SuccessResponse[List[ReviewResponse]])
async def get_reviews_by_customer(customer_id: str):
    found = await reviews().find(sort="created_at", customer_id=customer_id)
    return SuccessResponse(data=[to_response(r) for r in found])

@app.get("/reviews/{review_id}", response_model=SuccessResponse[ReviewResponse])
async def get_review(review_id: str):
    review = await reviews().get(review_id)
    if not review:
        raise NotFoundException("Review not found")
    return SuccessResponse(data=to_response(review))

@app.put("/reviews/{review_id}", response_model=SuccessResponse[ReviewResponse])
async def update_review(review_id: str, review_update: ReviewUpdate):
    update_data = {k: v for k, v in review_update.dict().items() if v is not None}
    repo = reviews()
    review = await repo.update(review_id, update_data) if update_data else await repo.get(review_id)
    if not review:
        raise NotFoundException("Review not found")
    return SuccessResponse(data=to_response(review), message="Review updated")

@app.delete("/reviews/{review_id}", response_model=SuccessResponse[dict])
async def delete_review(review_id: str):
    if not await reviews().delete(review_id):
        raise NotFoundException("Review not found")
    logger.info("Review deleted", extra={"review_id": review_id})
    return SuccessResponse(message="Review deleted")

@app.get("/health", response_model=HealthResponse)
async def health_check():
    db_status = await check_database(app.mongodb_client)
    if db_status != "connected":
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service Unhealthy"
        )

    return HealthResponse(
        service=SERVICE_NAME,
        status="healthy",
        timestamp=datetime.utcnow(),
        version="1.0.0",
        database=db_status
    )
