import uvicorn

from learning_lab.core.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run("learning_lab.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
