"""
Module routes/players.py
Rôle:
- Inscription d'un joueur (sans mot de passe) + lecture de sa fiche.

Intégrations:
- Le nom saisi devient l'identifiant du joueur ; il est renvoyé dans le cookie `playerID`.
- Le dernier inscrit attendu déclenche la première manche (voir `GameSession.join`).
"""
from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, Field

from ratingparty.deps.auth import (
    PLAYER_COOKIE_NAME,
    current_player_name,
    encode_player_cookie,
    get_game,
)
from ratingparty.services.game_state import (
    DuplicateOrLateJoinError,
    GameSession,
    InvalidNameError,
)

router = APIRouter(prefix="/players", tags=["players"])


class JoinPayload(BaseModel):
    name: str = Field(..., description="Nom affiché, unique dans la partie")


@router.post("/join")
async def join(payload: JoinPayload, response: Response, game: GameSession = Depends(get_game)):
    """Inscription d'un joueur -> pose le cookie `playerID` et renvoie l'état de la partie."""
    try:
        player = game.join(payload.name)
    except InvalidNameError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except DuplicateOrLateJoinError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc

    response.set_cookie(PLAYER_COOKIE_NAME, encode_player_cookie(player.name), path="/")
    snapshot = game.snapshot()
    return {
        "name": player.name,
        "active": player.active,
        "joined": len(snapshot.players),
        "expected": snapshot.expected_player_count,
        "phase": snapshot.phase,
    }


@router.get("/me")
async def me(name: str = Depends(current_player_name), game: GameSession = Depends(get_game)):
    """Fiche du joueur identifié par cookie (vue issue du snapshot)."""
    snapshot = game.snapshot()
    for player in snapshot.players:
        if player.name == name:
            return player
    raise HTTPException(status_code=404, detail=f"Player {name!r} not found")
