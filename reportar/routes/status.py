import time

import psutil
from fastapi import APIRouter, Request
from starlette.concurrency import run_in_threadpool

from reportar.models.incidencia import StatusOut

router = APIRouter(prefix="/api", tags=["meta"])


def memory_snapshot() -> dict:
    info = psutil.Process().memory_info()
    return {
        "rss": info.rss,
        "vms": info.vms,
        # `data` (Linux) is the closest analogue to a heap figure
        "heapUsed": getattr(info, "data", info.rss),
    }


def process_uptime() -> float:
    return round(time.time() - psutil.Process().create_time(), 3)


@router.get("/status", response_model=StatusOut)
async def status(request: Request) -> StatusOut:
    store = getattr(request.app.state, "store", None)
    connected = store is not None and await run_in_threadpool(store.ping)
    return StatusOut(
        db="connected" if connected else "disconnected",
        memory=memory_snapshot(),
        uptime=process_uptime(),
    )
