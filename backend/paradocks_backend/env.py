from pathlib import Path

from dotenv import load_dotenv


BACKEND_DIR = Path(__file__).resolve().parent.parent


def load_env(backend_dir: Path = BACKEND_DIR) -> Path:
    """Load `.env` from backend/ or, failing that, the project root.

    Shared by manage.py, the WSGI app and the Celery worker, so `SMSAPI_TOKEN`
    and the other SMS keys reach every process the same way. Variables that
    are already set in the environment win. Returns the file that was tried.
    """

    env_file = backend_dir / ".env"
    if not env_file.exists():
        env_file = backend_dir.parent / ".env"
    load_dotenv(env_file)
    return env_file
