"""Run the API locally: ``python -m techassist``."""
import uvicorn

from techassist.config import settings


def main() -> None:
    uvicorn.run(
        "techassist.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=False,
        log_config=None,
    )


if __name__ == "__main__":
    main()
