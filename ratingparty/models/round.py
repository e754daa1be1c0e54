"""
Models / round.py
Rôle:
- Décrire les fichiers de données (questions + configuration des manches) et la manche fusionnée.

Notes:
- Les fichiers JSON utilisent des clés en PascalCase (`Title`, `ActivePlayer`…) : on passe par des alias.
- `Round` est figé (frozen) : une fois le catalogue construit, les manches ne bougent plus.
"""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Question(BaseModel):
    """Entrée brute du fichier de questions (un film à noter)."""
    number: int = Field(0, alias="Number")
    title: str = Field(..., alias="Title")
    year: int = Field(0, alias="Year")
    cast: List[str] = Field(default_factory=list, alias="Cast")
    description: str = Field("", alias="Desc")
    user_count: int = Field(0, alias="UserCount")  # nombre de votes derrière la note
    rating: float = Field(..., alias="Rating")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class QuestionSet(BaseModel):
    game_name: str = Field("", alias="GameName")
    questions: List[Question] = Field(default_factory=list, alias="Questions")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class RoundConfig(BaseModel):
    """Paramètres d'une manche pour un nombre de joueurs donné."""
    number: int = Field(0, alias="Number")
    round_number: int = Field(0, alias="RoundNumber")
    points: int = Field(0, ge=0, alias="Points")
    active_player: int = Field(0, alias="ActivePlayer")
    final_round: bool = Field(False, alias="FinalRound")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class RoundConfigSet(BaseModel):
    rounds: List[RoundConfig] = Field(default_factory=list, alias="Questions")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Round(BaseModel):
    """Manche jouable : question + configuration fusionnées au chargement."""
    number: int  # position 0-based dans le catalogue
    title: str
    year: int = 0
    cast: List[str] = Field(default_factory=list)
    description: str = ""
    user_count: int = 0
    rating: float
    round_number: int = 0  # libellé d'affichage issu de la configuration
    points: int = 0
    active_player: int = 0
    final_round: bool = False

    model_config = ConfigDict(frozen=True)

    @classmethod
    def merge(cls, number: int, question: Question, config: Optional[RoundConfig]) -> "Round":
        config = config or RoundConfig()
        return cls(
            number=number,
            title=question.title,
            year=question.year,
            cast=list(question.cast),
            description=question.description,
            user_count=question.user_count,
            rating=question.rating,
            round_number=config.round_number,
            points=config.points,
            active_player=config.active_player,
            final_round=config.final_round,
        )

    def describe(self) -> str:
        """Résumé texte (équivalent de l'affichage console de la question)."""
        cast = ", ".join(self.cast) if self.cast else "?"
        return (
            f"Movie: {self.title} ({self.year}) | Cast: {cast} | "
            f"Score: {self.rating:0.1f} as voted by {self.user_count} users"
        )
