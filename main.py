import os

import uvicorn

from app.core.config import settings


def main():
    if settings.debug:
        os.environ["PYTHONASYNCIODEBUG"] = "1"

    # One worker: store writes are serialized by an in-process lock
    uvicorn.run(
        app="app.main:app",
        host=settings.backend_host,
        port=settings.backend_port,
        reload=settings.reload_uvicorn,
        workers=1,
    )


if __name__ == "__main__":
    main()
