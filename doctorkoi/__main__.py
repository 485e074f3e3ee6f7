"""
__main__.py
Start the Doctor Koi API server: python -m doctorkoi
"""
import os

import uvicorn


def main():
    host = os.getenv("DOCTORKOI_HOST", "127.0.0.1")
    port = int(os.getenv("DOCTORKOI_PORT", "9000"))
    print(f"🚀 Starting Doctor Koi on http://{host}:{port}")
    uvicorn.run("doctorkoi.app:app", host=host, port=port)


if __name__ == "__main__":
    main()
