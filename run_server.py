import uvicorn

from config import LOG_LEVEL

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="127.0.0.1",
        port=8000,
        reload=True,
        log_level=LOG_LEVEL.lower(),
    )
