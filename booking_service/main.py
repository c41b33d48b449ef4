from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import SERVICE_NAME
from .errors import BookingError
from .middleware import RequestLoggingMiddleware
from .rabbitmq import publisher
from .routes import router

app = FastAPI(title="Booking Service")
app.add_middleware(RequestLoggingMiddleware)
app.include_router(router)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.get("/health")
async def health():
    return {
        "status": "ok",
        "service": SERVICE_NAME,
        "events_enabled": publisher.enabled,
        "events_connected": publisher.connected,
    }


@app.on_event("startup")
async def startup():
    if publisher.enabled and not await publisher.connect():
        print(f"[{SERVICE_NAME}] starting without events; will retry RabbitMQ on next publish")


@app.on_event("shutdown")
async def shutdown():
    try:
        await publisher.close()
    except Exception as e:
        print(f"[{SERVICE_NAME}] RabbitMQ close failed: {e}")
