import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from masterysim.config import get_config
from masterysim.db.init_db import init_db
from masterysim.api.routers.characters import router as characters_router
from masterysim.api.routers.encounters import router as encounters_router
from masterysim.api.routers.encounter_saves import router as encounter_saves_router
from masterysim.api.routers.encounter_runtime import router as encounter_runtime_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(level=get_config().logging.level)
    init_db()
    yield


app = FastAPI(title=get_config().title, lifespan=lifespan)


@app.get("/health")
def health():
    return {"status": "ok"}


app.include_router(characters_router)
app.include_router(encounters_router)
app.include_router(encounter_saves_router)
app.include_router(encounter_runtime_router)
