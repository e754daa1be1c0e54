"""
Module routes/game.py
Rôle:
- Exposer le déroulé de la partie : snapshot, réponses, passage à la manche suivante,
  confirmation MJ de la notation, classement.

Notes:
- Le joueur est identifié par le cookie `playerID` (posé par /players/join).
- `/game/next` ne renvoie jamais d'erreur : un "next" prématuré ou en double est un no-op.
- `/game/confirm` n'est utile que si `CONFIRM_SCORING` est activé.
"""
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ratingparty.deps.auth import current_player_name, get_game, mj_required
from ratingparty.models.game import GameSnapshot
from ratingparty.services.game_state import (
    AlreadyAnsweredError,
    GameSession,
    InvalidChoiceError,
    InvalidGuessError,
    RoundClosedError,
    ScoringNotPendingError,
    UnknownPlayerError,
)

router = APIRouter(prefix="/game", tags=["game"])


class GuessPayload(BaseModel):
    guess: float = Field(0.0, allow_inf_nan=False, description="Note proposée (ex: 7.3)")
    choice: str = Field("", description="higher | lower | exact (vide pour le joueur actif)")


@router.get("", response_model=GameSnapshot)
async def game_state(game: GameSession = Depends(get_game)) -> GameSnapshot:
    """Snapshot complet pour l'affichage."""
    return game.snapshot()


@router.get("/leaderboard")
async def leaderboard(game: GameSession = Depends(get_game)):
    """Classement des joueurs par score décroissant."""
    return {"leaderboard": game.leaderboard()}


@router.post("/submit")
async def submit(
    payload: GuessPayload,
    name: str = Depends(current_player_name),
    game: GameSession = Depends(get_game),
):
    """Enregistre la réponse du joueur pour la manche ouverte."""
    try:
        game.submit_guess(name, payload.guess, payload.choice)
    except UnknownPlayerError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except (InvalidChoiceError, InvalidGuessError) as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except (AlreadyAnsweredError, RoundClosedError) as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc

    snapshot = game.snapshot()
    return {"ok": True, "phase": snapshot.phase, "pending_answers": snapshot.pending_answers}


@router.post("/next")
async def next_round(game: GameSession = Depends(get_game)):
    """Passe à la manche suivante (no-op si la manche n'est pas notée ou si c'était la dernière)."""
    advanced = game.advance_round()
    snapshot = game.snapshot()
    return {"advanced": advanced, "phase": snapshot.phase, "round_index": snapshot.round_index}


@router.post("/confirm", dependencies=[Depends(mj_required)])
async def confirm(game: GameSession = Depends(get_game)):
    """Action MJ : note la manche dont toutes les réponses sont arrivées."""
    try:
        result = game.confirm_scoring()
    except ScoringNotPendingError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return {"ok": True, "result": result}
