from fastapi import APIRouter, HTTPException
from datetime import datetime
from globalmoves.database import check_database_health
from globalmoves.websockets.connection_manager import manager

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check():
    """Application health check endpoint"""
    try:
        db_health = await check_database_health()
    except Exception as e:
        raise HTTPException(
            status_code=503,
            detail=f"Health check failed: {str(e)}"
        )

    databases = {"database": "connected" if db_health["database"] else "disconnected"}
    if "redis" in db_health:
        databases["redis"] = "connected" if db_health["redis"] else "disconnected"

    return {
        "status": "healthy" if db_health["overall"] else "unhealthy",
        "timestamp": datetime.utcnow(),
        "databases": databases,
        "realtime": {
            "active_rooms": len(manager.room_subscriptions),
            "relay": manager.relay is not None
        },
        "service": "globalmoves-breakout-rooms"
    }


@router.get("/health/ready")
async def readiness_check():
    """Kubernetes readiness probe endpoint"""
    db_health = await check_database_health()

    if not db_health["overall"]:
        raise HTTPException(
            status_code=503,
            detail="Service not ready - database connections failed"
        )

    return {"status": "ready"}


@router.get("/health/live")
async def liveness_check():
    """Kubernetes liveness probe endpoint"""
    return {"status": "alive", "timestamp": datetime.utcnow()}
