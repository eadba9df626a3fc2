import uvicorn

from app.core.config import get_settings
from app.main import app  # noqa: F401  (uvicorn main:app)

if __name__ == "__main__":
    s = get_settings()
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=s.APP_ENV == "dev")
