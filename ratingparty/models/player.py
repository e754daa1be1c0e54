"""
Models / player.py
Rôle:
- Définir l'état d'un joueur pendant la partie (score cumulé + saisie de la manche en cours).

Champs:
- name: identifiant stable (saisi à l'inscription, unique dans la partie).
- score: total cumulé, ne décroît jamais.
- guess / choice / answered: saisie de la manche courante, remise à zéro à chaque manche.
- active: joueur dont la note sert de référence (mode multijoueur).
"""
from pydantic import BaseModel
from typing import Literal

Choice = Literal["higher", "lower", "exact", ""]
CHOICES = ("higher", "lower", "exact", "")


class Player(BaseModel):
    """Joueur (mutable, possédé par une `GameSession`)."""
    name: str
    score: int = 0
    guess: float = 0.0
    choice: Choice = ""  # "" = pas de choix (joueur actif, manche finale, solo)
    answered: bool = False
    active: bool = False

    def reset_round(self) -> None:
        self.guess = 0.0
        self.choice = ""
        self.answered = False
