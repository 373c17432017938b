import logging

from fastapi import FastAPI

from .api.generate import router as generate_router

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

app = FastAPI(title="CodeForge AI Backend")
app.include_router(generate_router, prefix="/generate")
