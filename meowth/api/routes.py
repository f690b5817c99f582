from fastapi import APIRouter, HTTPException, Request

from meowth.core.context import AgentContext, AgentStatus
from meowth.observability.logger import get_logger

log = get_logger("api")

router = APIRouter(prefix="/api/agent")


def get_agent(request: Request) -> AgentContext:
    """The AgentContext the lifespan attached to this app."""
    agent = getattr(request.app.state, "agent", None)
    if agent is None:
        raise HTTPException(status_code=503, detail="Agent not initialized")
    return agent


@router.get("/status", response_model=AgentStatus)
async def get_status(request: Request):
    return await get_agent(request).status()


@router.get("/stream", response_model=AgentStatus)
async def get_stream(request: Request):
    """Polling endpoint for the live terminal; trades are served by /status."""
    return await get_agent(request).status(include_trades=False)


@router.post("/run", response_model=AgentStatus)
async def run_cycle(request: Request):
    agent = get_agent(request)
    await agent.scheduler.restore()
    await agent.scheduler.run_once()
    log.info("manual_cycle", cycle_count=agent.scheduler.cycle_count)
    return await agent.status()


@router.post("/start")
async def start_agent(request: Request):
    agent = get_agent(request)
    await agent.scheduler.start()
    return {"is_running": agent.scheduler.is_running, "is_alive": agent.ledger.is_alive()}


@router.post("/stop")
async def stop_agent(request: Request):
    agent = get_agent(request)
    agent.scheduler.stop()
    return {"is_running": agent.scheduler.is_running, "is_alive": agent.ledger.is_alive()}
