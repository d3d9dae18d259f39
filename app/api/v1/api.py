from fastapi import APIRouter
from app.api.v1.endpoints import attendance, qr, face, geofence, notifications, maintenance

api_router = APIRouter()

# Register routes
api_router.include_router(attendance.router, prefix="/attendance", tags=["Attendance"])
api_router.include_router(qr.router, prefix="/qr", tags=["QR"])
api_router.include_router(face.router, prefix="/face", tags=["Face"])
api_router.include_router(geofence.router, prefix="/geofence", tags=["Geofence"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
api_router.include_router(maintenance.router, prefix="/maintenance", tags=["Maintenance"])
