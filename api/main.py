"""FastAPI application for machine pool node group generation."""

import logging

from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI

from api.routes.machinepools import router as machinepools_router
from api.settings import settings

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = FastAPI(
    title="Machine pool generator",
    description="Derive per-zone worker node groups for AWS machine pools "
    "from live subnet and routing state.",
    version="1.0.0",
)

app.include_router(machinepools_router)


@app.get("/health", tags=["health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
