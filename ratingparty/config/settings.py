"""
Configuration de l'application (Settings)
=========================================

Rôle
----
- Centraliser les paramètres du jeu (nom, host/port, nombre de joueurs, fichiers de questions…).
- Les valeurs par défaut conviennent pour une soirée en local.
- Les variables peuvent être surchargées via un fichier `.env` ou l'environnement.

Intégrations
------------
- `pydantic-settings` charge automatiquement les variables d'env et `.env`.
- `main.create_app()` lit `settings` (ou la config reçue) pour charger le catalogue et instancier
  la partie ; la config est ensuite exposée aux routes via `app.state.settings`.
- HOST/PORT ne démarrent rien : ils doivent être repris sur la ligne de commande uvicorn.

Exemples de `.env`
------------------
PORT=8080
PLAYER_COUNT=3
QUESTIONS_FILE="soiree_cinema.json"
MJ_TOKEN="mettre-une-valeur-secrète"
CONFIRM_SCORING=true
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List
import os


class Settings(BaseSettings):
    # Nom du service (apparaît dans /health)
    APP_NAME: str = "Rating Party Backend"
    # Adresse annoncée dans le log de démarrage uniquement : le bind réel est celui
    # passé à uvicorn (`uvicorn ratingparty.main:app --host $HOST --port $PORT`)
    HOST: str = "0.0.0.0"
    PORT: int = 8080

    # Nombre de joueurs attendus avant de lancer la première manche (1 = mode solo)
    PLAYER_COUNT: int = 1
    # Fichier de questions, relatif à <DATA_DIR>/questions/
    QUESTIONS_FILE: str = "questions.json"

    # Répertoire des données (questions/ et playercounts/)
    # Par défaut: <repo>/ratingparty/data
    DATA_DIR: str = os.path.join(os.path.dirname(os.path.dirname(__file__)), "data")

    # Jeton MJ (animateur) utilisé par la dépendance `mj_required`
    # ⚠️ Remplacez via .env
    MJ_TOKEN: str = "changeme-super-secret"

    # Si True, une manche complète attend POST /game/confirm avant d'être notée
    CONFIRM_SCORING: bool = False
    # Tolérance pour l'égalité "exact" (0.0 = égalité stricte des flottants)
    EXACT_TOLERANCE: float = 0.0

    LOG_LEVEL: str = "INFO"

    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # - lit le fichier .env (UTF-8) si présent
    # - ignore les clés supplémentaires pour éviter les erreurs
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def questions_path(self) -> str:
        return os.path.join(self.DATA_DIR, "questions", self.QUESTIONS_FILE)


# Instance unique importable partout : `settings`
settings = Settings()
