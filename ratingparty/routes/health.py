"""
Module routes/health.py
Rôle:
- Endpoint de santé (service OK + avancement des inscriptions).
"""
from fastapi import APIRouter, Request

from ratingparty.deps.auth import get_settings

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health(request: Request):
    """Renvoie un OK minimal avec le nom de service et l'état de la partie chargée."""
    config = get_settings(request)
    game = getattr(request.app.state, "game", None)
    if game is None:
        return {"ok": False, "service": config.APP_NAME, "game_loaded": False}
    snapshot = game.snapshot()
    return {
        "ok": True,
        "service": config.APP_NAME,
        "game_loaded": True,
        "phase": snapshot.phase,
        "players": len(snapshot.players),
        "expected_players": snapshot.expected_player_count,
    }
