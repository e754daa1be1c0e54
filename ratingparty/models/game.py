"""
Models / game.py
Rôle:
- Définir un snapshot léger et typé de la partie (lecture seule) pour les réponses API.
- Définir le résultat d'une manche notée (`RoundResult`), conservé dans l'historique.

Champs principaux:
- phase: étape du moteur de manches (NOT_STARTED, ROUND_OPEN, …).
- round_index: -1 tant que la partie n'a pas commencé.
- players: vue joueur (score, réponse reçue, joueur actif).
- last_result / history: résultats des manches déjà notées.
"""
from pydantic import BaseModel, Field
from typing import Dict, List, Literal, Optional

from .round import Round

ScoringMode = Literal["multiplayer", "solo", "final"]
Outcome = Literal["higher", "lower", "exact"]


class RoundResult(BaseModel):
    """Points distribués lors d'une manche."""
    round_index: int
    mode: ScoringMode
    outcome: Optional[Outcome] = None  # None en solo / manche finale
    awards: Dict[str, int] = Field(default_factory=dict)  # {nom: points gagnés}
    bonus_to: Optional[str] = None  # bénéficiaire du bonus de 5 points
    bonus_stolen: bool = False  # True si un adversaire a volé le bonus au joueur actif

    def total(self) -> int:
        return sum(self.awards.values())


class PlayerView(BaseModel):
    name: str
    score: int = 0
    answered: bool = False
    active: bool = False
    # Révélés seulement une fois la manche notée (pas de triche en cours de manche)
    guess: Optional[float] = None
    choice: Optional[str] = None


class GameSnapshot(BaseModel):
    """Vue cohérente de la partie, prise sous verrou."""
    game_name: str = ""
    phase: str
    started: bool = False
    round_index: int = -1
    total_rounds: int = 0
    current_round: Optional[Round] = None
    expected_player_count: int = 0
    pending_answers: int = 0
    players: List[PlayerView] = Field(default_factory=list)
    last_result: Optional[RoundResult] = None
    history: List[RoundResult] = Field(default_factory=list)
