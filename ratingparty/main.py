"""
Application FastAPI — Point d'entrée
====================================

Rôle
----
- Instancie l'app FastAPI, configure le CORS pour le front,
- Monte les routeurs (joueurs, partie, santé),
- Charge le catalogue au démarrage et attache la `GameSession` à `app.state.game`.

Notes
-----
- Une partie par application : pas de singleton global, la session vit sur `app.state`.
- Catalogue absent ou invalide au démarrage → `CatalogError`, le serveur s'arrête.
- ⚠️ Le middleware CORS doit être ajouté AVANT les include_router.

Lancement : `uvicorn ratingparty.main:app --port 8080` (PLAYER_COUNT=3 QUESTIONS_FILE=...)
"""
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ratingparty.config.settings import Settings, settings as default_settings
from ratingparty.routes.game import router as game_router
from ratingparty.routes.health import router as health_router
from ratingparty.routes.players import router as players_router
from ratingparty.services.catalog import CatalogError, load_catalog
from ratingparty.services.game_state import GameSession, create_session

logger = logging.getLogger(__name__)


def load_game(config: Settings) -> GameSession:
    """Charge le catalogue décrit par la configuration et crée la partie."""
    catalog = load_catalog(
        Path(config.questions_path),
        config.PLAYER_COUNT,
        data_dir=Path(config.DATA_DIR),
    )
    return create_session(
        catalog.rounds,
        config.PLAYER_COUNT,
        game_name=catalog.game_name,
        require_confirmation=config.CONFIRM_SCORING,
        exact_tolerance=config.EXACT_TOLERANCE,
    )


def create_app(game: Optional[GameSession] = None, config: Optional[Settings] = None) -> FastAPI:
    """
    Construit l'application.
    - `game` fourni (tests) : utilisé tel quel,
    - sinon la partie est chargée au démarrage depuis `config`.
    """
    config = config or default_settings
    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger("ratingparty").setLevel(config.LOG_LEVEL.upper())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.game is None:
            try:
                app.state.game = load_game(config)
            except CatalogError:
                logger.critical("Cannot start without question data (%s)", config.questions_path)
                raise
            logger.info("Server ready on http://%s:%d", config.HOST, config.PORT)
        yield

    app = FastAPI(title=config.APP_NAME, lifespan=lifespan)
    app.state.game = game
    app.state.settings = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.ALLOWED_ORIGINS,
        allow_credentials=True,          # ← nécessaire pour le cookie playerID
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(players_router)
    app.include_router(game_router)
    app.include_router(health_router)

    @app.get("/")
    async def root():
        """Ping basique : permet de vérifier que l'app tourne."""
        return {"ok": True, "service": "ratingparty-backend"}

    return app


app = create_app()
