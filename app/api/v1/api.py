from fastapi import APIRouter
from app.api.v1.doctors import routes as doctors

api_router = APIRouter()
api_router.include_router(doctors.router)
