# run_server.py
import os, sys, traceback, faulthandler
from pathlib import Path

# write crash logs next to the exe
BASE_DIR = Path(sys.executable).resolve().parent if getattr(sys, "frozen", False) else Path(__file__).resolve().parent
LOG_FILE = BASE_DIR / "backend_crash.log"

# dump fatal crashes too
faulthandler.enable(open(LOG_FILE, "a", encoding="utf-8"))


def log(msg: str):
    with open(LOG_FILE, "a", encoding="utf-8") as f:
        f.write(msg + "\n")


try:
    log("\n--- START ---")
    log(f"exe={sys.executable}")
    log(f"cwd={os.getcwd()}")
    log(f"base_dir={BASE_DIR}")

    import uvicorn

    from app.core.config import APP_HOST, APP_PORT, LOG_LEVEL

    # app import after crash log is ready
    from main import app

    log(f"listening on {APP_HOST}:{APP_PORT}")
    uvicorn.run(app, host=APP_HOST, port=APP_PORT, reload=False, log_level=LOG_LEVEL.lower())

except Exception:
    err = traceback.format_exc()
    log(err)
    print(err)  # if console is visible
    if sys.stdin and sys.stdin.isatty():
        input("\nPress Enter to exit...")
