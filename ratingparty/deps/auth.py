"""
Dépendances HTTP : partie courante, joueur identifié, accès MJ
==============================================================

Objectif
--------
- `get_game` : renvoie la `GameSession` attachée à l'application (`app.state.game`).
- `current_player_name` : lit le cookie `playerID` posé à l'inscription (nom URL-encodé).
- `mj_required` : autorise l'action MJ (confirmation de notation) via un **Bearer token**.

Comportement & codes retour
---------------------------
- 503 si aucune partie n'est chargée (catalogue absent au démarrage).
- 401 si le cookie joueur manque, ou si aucun Bearer n'est fourni pour une route MJ.
- 403 si le Bearer fourni ne correspond pas au `MJ_TOKEN` de la configuration de l'app (`app.state.settings`).

Notes
-----
- Pas de comptes joueurs : le nom suffit à identifier un joueur dans la partie.
- On garde `HTTPBearer(auto_error=False)` pour faire remonter 401/403 propres.
"""

from __future__ import annotations

from typing import Optional
from urllib.parse import quote, unquote

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from ratingparty.config.settings import Settings, settings as default_settings
from ratingparty.services.game_state import GameSession

PLAYER_COOKIE_NAME = "playerID"


def encode_player_cookie(name: str) -> str:
    return quote(name, safe="")


def get_settings(request: Request) -> Settings:
    """Configuration passée à `create_app` (à défaut, l'instance globale)."""
    return getattr(request.app.state, "settings", None) or default_settings


def get_game(request: Request) -> GameSession:
    game = getattr(request.app.state, "game", None)
    if game is None:
        raise HTTPException(status_code=503, detail="No game loaded")
    return game


def current_player_name(request: Request) -> str:
    raw = request.cookies.get(PLAYER_COOKIE_NAME)
    if not raw:
        raise HTTPException(status_code=401, detail="Player not identified")
    name = unquote(raw).strip()
    if not name:
        raise HTTPException(status_code=400, detail="Invalid player ID")
    return name


# Schéma Bearer (désactive l'erreur auto pour qu'on rende nos 401/403)
bearer = HTTPBearer(auto_error=False)


def mj_required(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    config: Settings = Depends(get_settings),
):
    """
    Dépendance d'accès MJ.

    Autorise si `Authorization: Bearer <MJ_TOKEN>` (configuration de l'app).
    """
    if credentials and (credentials.scheme or "").lower() == "bearer":
        if credentials.credentials == config.MJ_TOKEN:
            return True
        raise HTTPException(status_code=403, detail="Invalid token")

    raise HTTPException(status_code=401, detail="MJ authentication required")
