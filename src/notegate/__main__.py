"""notegate entrypoint.

Run with:
  python -m notegate
"""

import logging
import os
import uvicorn

def main() -> None:
    logging.basicConfig(
        level=os.getenv("NOTEGATE_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    host = os.getenv("NOTEGATE_HOST", "0.0.0.0")
    port = int(os.getenv("NOTEGATE_PORT", "8000"))
    reload = os.getenv("NOTEGATE_RELOAD", "false").lower() in {"1", "true", "yes", "y"}
    uvicorn.run("notegate.app:create_app", host=host, port=port, reload=reload, factory=True)

if __name__ == "__main__":
    main()
