from __future__ import annotations

import logging
import os

from fastapi import FastAPI

from .routes import router

logging.basicConfig(
    level=os.getenv("WORKBOT_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

app = FastAPI(title="Workbot")
app.include_router(router)


if __name__ == "__main__":
  import uvicorn

  host = os.getenv("WORKBOT_HOST", "0.0.0.0")
  port = int(os.getenv("WORKBOT_PORT", "8000"))
  uvicorn.run(app, host=host, port=port)
