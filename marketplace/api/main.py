from fastapi import APIRouter, Response, status
from sqlmodel import literal, select

from marketplace.api.routes import order
from marketplace.deps import KafkaProducerDep, SessionDep

api_router = APIRouter()

api_router.include_router(order.router)


@api_router.get("/health/live")
async def liveness():
    return {"status": "alive"}


@api_router.get("/health/ready")
async def readiness(response: Response, session: SessionDep, producer: KafkaProducerDep):
    health_status = {"status": "ready", "checks": {}}
    all_healthy = True

    # Check PostgreSQL
    try:
        session.exec(select(literal(1)))
        health_status["checks"]["database"] = "connected"
    except Exception as e:
        health_status["checks"]["database"] = f"error: {str(e)}"
        all_healthy = False

    # Orders are still accepted without Kafka, but their events would be lost
    if producer.started:
        health_status["checks"]["kafka"] = "connected"
    else:
        health_status["checks"]["kafka"] = "disconnected"
        all_healthy = False

    if not all_healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        health_status["status"] = "not ready"

    return health_status
