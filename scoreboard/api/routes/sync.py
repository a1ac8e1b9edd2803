"""Scan API routes.

Provides endpoints for:
- Triggering each scan (tables, scores, leaderboard, activity, all)
- Scan status: last result per kind, document serial, scheduler state

Scans run inline and return their result. A second request while a scan is
running waits for the first to finish.
"""
import logging
from typing import Dict

from fastapi import APIRouter, Depends

from scoreboard.api.deps import AppServices, get_orchestrator, get_services
from scoreboard.core.scheduler import get_scheduler
from scoreboard.services.sync.orchestrator import ScanOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sync", tags=["sync"])


@router.get("/status")
async def get_sync_status(services: AppServices = Depends(get_services)) -> Dict:
    orchestrator = services.orchestrator
    scheduler = get_scheduler()
    return {
        "busy": orchestrator.busy,
        "serial_number": services.document.serial_number,
        "tables": len(services.model),
        "scoreboards": len(services.model.scores),
        "last_results": {kind: result.to_dict() for kind, result in orchestrator.last_results.items()},
        "scheduler": {
            "running": bool(scheduler and scheduler.running),
            "interval_minutes": scheduler.interval_minutes if scheduler else 0,
        },
    }


@router.post("/tables")
async def trigger_scan_tables(orchestrator: ScanOrchestrator = Depends(get_orchestrator)) -> Dict:
    return (await orchestrator.scan_tables()).to_dict()


@router.post("/scores")
async def trigger_scan_scores(orchestrator: ScanOrchestrator = Depends(get_orchestrator)) -> Dict:
    return (await orchestrator.scan_scores()).to_dict()


@router.post("/scores/reset")
async def trigger_reset_scan_scores(orchestrator: ScanOrchestrator = Depends(get_orchestrator)) -> Dict:
    """Forget cached no-score statuses and ask the cabinet about every table again."""
    return (await orchestrator.reset_scan_scores()).to_dict()


@router.post("/leaderboard")
async def trigger_scan_leaderboard(orchestrator: ScanOrchestrator = Depends(get_orchestrator)) -> Dict:
    return (await orchestrator.scan_leaderboard()).to_dict()


@router.post("/activity")
async def trigger_scan_activity(orchestrator: ScanOrchestrator = Depends(get_orchestrator)) -> Dict:
    return (await orchestrator.scan_activity()).to_dict()


@router.post("/all")
async def trigger_scan_all(orchestrator: ScanOrchestrator = Depends(get_orchestrator)) -> Dict:
    results = await orchestrator.scan_all()
    return {
        "success": all(result.success for result in results),
        "results": [result.to_dict() for result in results],
    }
