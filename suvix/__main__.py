import uvicorn
from dotenv import load_dotenv

load_dotenv()

from suvix.config import settings  # noqa: E402

if __name__ == "__main__":
    uvicorn.run("suvix.app:fastapi_app", host=settings.APP_HOST, port=settings.APP_PORT)
