"""
Service: catalog.py
Rôle:
- Charger le fichier de questions et la configuration des manches pour N joueurs.
- Construire le catalogue figé (tuple de `Round`) consommé par `GameSession`.

Fichiers sources:
- <DATA_DIR>/questions/<fichier>.json   → {"GameName": ..., "Questions": [{Number, Title, Year, Cast, Desc, UserCount, Rating}]}
- <DATA_DIR>/playercounts/<N>player.json → {"Questions": [{Number, RoundNumber, Points, ActivePlayer, FinalRound}]}

Remarque:
- La manche finale est toujours la DERNIÈRE question du fichier ; la configuration indique à quel
  rang elle se joue. Les questions intercalées sont écartées.
- Toute incohérence lève `CatalogError` : sans catalogue valide, la partie ne peut pas démarrer.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple

import orjson
from pydantic import ValidationError

from ratingparty.models.round import Question, QuestionSet, Round, RoundConfig, RoundConfigSet

logger = logging.getLogger(__name__)


class CatalogError(RuntimeError):
    """Raised when the question catalog cannot be loaded or validated."""


@dataclass(frozen=True)
class Catalog:
    game_name: str
    rounds: Tuple[Round, ...]


def player_count_path(data_dir: Path, player_count: int) -> Path:
    return Path(data_dir) / "playercounts" / f"{player_count}player.json"


def _read(path: Path) -> Any:
    try:
        with path.open("rb") as f:
            return orjson.loads(f.read())
    except FileNotFoundError as exc:
        raise CatalogError(f"{path.name} not found at {path}") from exc
    except orjson.JSONDecodeError as exc:
        raise CatalogError(f"{path.name} is not valid JSON ({exc})") from exc


def _relocate_final(questions: Sequence[Question], configs: Sequence[RoundConfig]) -> List[Question]:
    """Place la dernière question au rang de la manche finale configurée."""
    ordered = list(questions)
    for cfg in configs:
        if not cfg.final_round or cfg.number == len(ordered):
            continue
        slot = cfg.number
        if slot < 0 or slot >= len(ordered):
            raise CatalogError(
                f"Final round slot {slot} is out of range (catalog holds {len(ordered)} questions)"
            )
        final = ordered[-1].model_copy(update={"number": slot})
        ordered = ordered[:slot] + [final]
    return ordered


def build_catalog(
    questions: Sequence[Question],
    configs: Sequence[RoundConfig],
    player_count: int,
) -> Tuple[Round, ...]:
    """
    Transformation pure questions + configuration -> manches.
    - relocalise la manche finale,
    - coupe au nombre de manches configurées,
    - vérifie les index de joueur actif.
    """
    if not questions:
        raise CatalogError("Question file holds no questions")
    if player_count < 1:
        raise CatalogError(f"Player count must be >= 1, got {player_count}")

    ordered = _relocate_final(questions, configs)

    if configs:
        if len(ordered) < len(configs):
            raise CatalogError(
                f"{len(configs)} rounds configured but only {len(ordered)} questions available"
            )
        ordered = ordered[: len(configs)]

    rounds: List[Round] = []
    for index, question in enumerate(ordered):
        cfg: Optional[RoundConfig] = configs[index] if index < len(configs) else None
        if cfg is not None and not 0 <= cfg.active_player < player_count:
            raise CatalogError(
                f"Round {index}: active player {cfg.active_player} outside 0..{player_count - 1}"
            )
        rounds.append(Round.merge(index, question, cfg))
    return tuple(rounds)


def load_catalog(questions_path: Path, player_count: int, data_dir: Optional[Path] = None) -> Catalog:
    """
    Charge et valide les deux fichiers, puis fusionne.
    Raises CatalogError si un fichier manque ou est invalide.
    """
    questions_path = Path(questions_path)
    base = Path(data_dir) if data_dir else questions_path.parent.parent
    config_path = player_count_path(base, player_count)

    try:
        question_set = QuestionSet.model_validate(_read(questions_path))
    except ValidationError as exc:
        raise CatalogError(f"{questions_path.name} does not match the expected schema: {exc}") from exc
    try:
        config_set = RoundConfigSet.model_validate(_read(config_path))
    except ValidationError as exc:
        raise CatalogError(f"{config_path.name} does not match the expected schema: {exc}") from exc

    rounds = build_catalog(question_set.questions, config_set.rounds, player_count)
    logger.info(
        "Loaded catalog %r: %d rounds for %d player(s) (%s)",
        question_set.game_name,
        len(rounds),
        player_count,
        config_path,
    )
    return Catalog(game_name=question_set.game_name, rounds=rounds)
