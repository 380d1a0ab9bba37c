import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from config import CORS_ORIGINS, LOG_LEVEL, PORT
from database import engine, init_models
from relay.router import router as relay_router
from relay.state import RelayState
from tournament.router import router as tournament_router

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_models()
    app.state.relay = RelayState()
    logger.info("Relay ready")
    yield
    await app.state.relay.close()
    await engine.dispose()


app = FastAPI(title="Badminton Eight", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["*"],
)
app.include_router(tournament_router)
app.include_router(relay_router)


@app.get("/", response_class=PlainTextResponse)
async def index():
    return "Socket server is running.\n"


@app.head("/")
async def index_head():
    return PlainTextResponse("")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=PORT)
