import logging

from fastapi import FastAPI
from benchbot.config.settings import get_settings
from benchbot.core.routes import router

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title=settings.app_name,
    description="API for benchmarking pull request branches and publishing runtime weights",
    version="1.0.0"
)

app.include_router(router, prefix="/api/v1")

@app.get("/")
async def root():
    return {"message": "Benchmark Bot API is running"}

@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "benchbot-api"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug
    )
