"""Run the API with uvicorn: ``python -m repostats``."""

import uvicorn

from repostats.settings import settings

if __name__ == "__main__":
    uvicorn.run(
        "repostats.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
    )
