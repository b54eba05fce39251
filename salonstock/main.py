from prometheus_fastapi_instrumentator import Instrumentator

from salonstock import create_app
from salonstock.core.config import get_settings
from salonstock.core.logging import setup_logging

settings = get_settings()
setup_logging(settings)
app = create_app(settings)
Instrumentator().instrument(app).expose(app, include_in_schema=False)


@app.get("/health")
async def health() -> dict[str, bool]:
    return {"ok": True}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("salonstock.main:app", host=settings.HOST, port=settings.PORT)
