import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from questionnaire.config import settings
from questionnaire.routers.questionnaire import router as questionnaire_router

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = FastAPI(title=settings.APP_NAME)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(questionnaire_router)


@app.get("/health")
async def health():
    return {"status": "ok"}
