from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from meowth.config import settings
from meowth.database import create_engine, create_session_factory, init_db
from meowth.observability.logger import setup_logging, get_logger
from meowth.core.context import AgentContext
from meowth.engine.anthropic import AnthropicEngine
from meowth.market.jupiter import JupiterMarketData
from meowth.persistence.sql import SqlPersistentStore
from meowth.api.routes import router as agent_router

setup_logging(settings.log_level)
log = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    log.info("meowth_starting")

    # 1. Database
    engine = create_engine(settings.resolved_database_url())
    await init_db(engine)
    session_factory = create_session_factory(engine)
    log.info("database_initialized")

    # 2. Collaborators
    store = SqlPersistentStore(session_factory)
    market = JupiterMarketData(settings)
    decision_engine = AnthropicEngine(settings)
    if not decision_engine.is_available():
        log.warning("engine_unavailable", engine=decision_engine.name)

    # 3. Agent
    agent = AgentContext.build(settings, store, market, decision_engine)
    app.state.agent = agent

    if settings.autostart:
        await agent.scheduler.start()
    else:
        await agent.scheduler.restore()

    log.info("meowth_ready",
             running=agent.scheduler.is_running,
             alive=agent.ledger.is_alive(),
             cycle_count=agent.scheduler.cycle_count)

    yield

    # Shutdown
    log.info("meowth_shutting_down")
    await agent.shutdown()
    await engine.dispose()


app = FastAPI(title="Meowth", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(agent_router)
