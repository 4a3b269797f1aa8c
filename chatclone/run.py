"""Backend launcher; sets the Windows event loop policy before uvicorn starts."""
import asyncio
import os
import sys

if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsProactorEventLoopPolicy())

import uvicorn


def main() -> None:
    host = os.environ.get("CHATCLONE_HOST", "127.0.0.1")
    port = int(os.environ.get("CHATCLONE_PORT", "8765"))
    uvicorn.run("chatclone.main:app", host=host, port=port)


if __name__ == "__main__":
    main()
