"""ASGI entrypoint: load .env, configure logging, build the app.

  uvicorn app.main:app
  python -m app.main        # binds HOST:PORT from settings
"""

from dotenv import load_dotenv

load_dotenv()

import logging

import uvicorn

from app.application import create_app
from app.core.config import get_settings

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)

app = create_app(settings)


if __name__ == "__main__":
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
