"""Quill entrypoint.

Run with:
  python -m quill
"""

import os
import uvicorn

def main() -> None:
    host = os.getenv("QUILL_HOST", "0.0.0.0")
    port = int(os.getenv("QUILL_PORT", "8000"))
    reload = os.getenv("QUILL_RELOAD", "false").lower() in {"1", "true", "yes", "y"}
    uvicorn.run("quill.app:create_app", factory=True, host=host, port=port, reload=reload)

if __name__ == "__main__":
    main()
