"""
Service: game_state.py
Rôle:
- Porter l'état d'UNE partie (roster, catalogue, manche courante, historique) en mémoire.
- Enchaîner les manches : inscription -> manche ouverte -> [attente MJ] -> manche notée -> suivante.
- Sérialiser toutes les lectures/écritures sous un verrou unique (requêtes HTTP concurrentes).

Phases:
- NOT_STARTED           : roster incomplet, round_index == -1
- ROUND_OPEN            : réponses acceptées
- AWAITING_CONFIRMATION : tout le monde a répondu, le MJ doit confirmer (option `require_confirmation`)
- ROUND_SCORED          : points distribués, en attente d'un "next"
- GAME_COMPLETE         : "next" demandé après la dernière manche notée

Verrou:
- Chaque méthode publique prend `_lock` une seule fois et fait toute sa transition
  (ex: dernière réponse -> notation -> rotation du joueur actif) avant de le relâcher.
- Les helpers `_xxx_nolock` supposent le verrou déjà pris.

Aucune I/O ici hormis les logs : le chargement du catalogue se fait dans `catalog.py`.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from threading import RLock
from typing import List, Optional, Sequence, Tuple

from ratingparty.models.game import GameSnapshot, PlayerView, RoundResult
from ratingparty.models.player import CHOICES, Player
from ratingparty.models.round import Round
from .scoring import score_final, score_multiplayer, score_solo

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    ROUND_OPEN = "ROUND_OPEN"
    AWAITING_CONFIRMATION = "AWAITING_CONFIRMATION"
    ROUND_SCORED = "ROUND_SCORED"
    GAME_COMPLETE = "GAME_COMPLETE"


# -----------------------------
# Erreurs client (état inchangé)
# -----------------------------
class GameError(Exception):
    """Base des erreurs de saisie joueur : la requête est rejetée, la partie ne bouge pas."""


class InvalidNameError(GameError):
    pass


class DuplicateOrLateJoinError(GameError):
    """Nom déjà pris ou roster complet."""


class UnknownPlayerError(GameError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Player {name!r} not found")


class AlreadyAnsweredError(GameError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Player {name!r} already answered this round")


class RoundClosedError(GameError):
    """Aucune manche n'accepte de réponse (pas commencée, notée ou terminée)."""


class InvalidChoiceError(GameError):
    pass


class InvalidGuessError(GameError):
    """Note non finie (NaN, ±inf)."""


class ScoringNotPendingError(GameError):
    """Confirmation demandée alors qu'aucune manche n'attend de notation."""


@dataclass
class GameSession:
    catalog: Tuple[Round, ...]
    expected_player_count: int
    game_name: str = ""
    require_confirmation: bool = False
    exact_tolerance: float = 0.0
    _lock: RLock = field(default_factory=RLock, init=False, repr=False)
    players: List[Player] = field(default_factory=list, init=False)
    round_index: int = field(default=-1, init=False)
    current_round: Optional[Round] = field(default=None, init=False)
    pending_answers: int = field(default=0, init=False)
    phase: Phase = field(default=Phase.NOT_STARTED, init=False)
    started: bool = field(default=False, init=False)
    history: List[RoundResult] = field(default_factory=list, init=False)

    def __post_init__(self) -> None:
        self.catalog = tuple(self.catalog)
        if not self.catalog:
            raise ValueError("GameSession needs at least one round")
        if self.expected_player_count < 1:
            raise ValueError("expected_player_count must be >= 1")
        if not self.solo:
            for index, rnd in enumerate(self.catalog):
                if not 0 <= rnd.active_player < self.expected_player_count:
                    raise ValueError(
                        f"Round {index} designates player index {rnd.active_player} "
                        f"outside 0..{self.expected_player_count - 1}"
                    )

    @property
    def solo(self) -> bool:
        return self.expected_player_count == 1

    @property
    def round_open(self) -> bool:
        return self.phase == Phase.ROUND_OPEN

    # -----------------------------
    # Roster
    # -----------------------------
    def join(self, name: str) -> Player:
        """Inscrit un joueur ; le roster complet déclenche la première manche."""
        name = (name or "").strip()
        if not name:
            raise InvalidNameError("Name is required")
        with self._lock:
            if self._find_nolock(name) is not None:
                raise DuplicateOrLateJoinError(f"Name {name!r} is already taken")
            if len(self.players) >= self.expected_player_count:
                raise DuplicateOrLateJoinError("Game is full")

            player = Player(name=name, active=not self.solo and not self.players)
            self.players.append(player)
            logger.info("%s has joined. Count: %d/%d", name, len(self.players), self.expected_player_count)

            if len(self.players) == self.expected_player_count:
                self.started = True
                logger.info("All players joined, starting game.")
                self._open_round_nolock(0)
            return player

    def find_player(self, name: str) -> Optional[Player]:
        with self._lock:
            return self._find_nolock(name)

    def get_player(self, name: str) -> Player:
        with self._lock:
            player = self._find_nolock(name)
            if player is None:
                raise UnknownPlayerError(name)
            return player

    def _find_nolock(self, name: str) -> Optional[Player]:
        for player in self.players:
            if player.name == name:
                return player
        return None

    # -----------------------------
    # Manches
    # -----------------------------
    def submit_guess(self, name: str, guess: float, choice: str = "") -> Player:
        """
        Enregistre la réponse d'un joueur pour la manche ouverte.
        La dernière réponse déclenche la notation (ou l'attente de confirmation MJ).
        """
        choice = (choice or "").strip().lower()
        with self._lock:
            player = self._find_nolock(name)
            if player is None:
                raise UnknownPlayerError(name)
            if player.answered:
                raise AlreadyAnsweredError(name)
            if self.phase != Phase.ROUND_OPEN:
                raise RoundClosedError(f"No round accepting guesses (phase={self.phase.value})")
            if choice not in CHOICES:
                raise InvalidChoiceError(f"Unknown choice {choice!r}")
            if not math.isfinite(guess):
                raise InvalidGuessError(f"Guess must be a finite number, got {guess!r}")

            player.guess = float(guess)
            player.choice = choice
            player.answered = True
            self.pending_answers += 1
            logger.info("%s submitted a guess of %.1f (choice=%s)", name, player.guess, choice or "-")

            if self.pending_answers == len(self.players):
                if self.require_confirmation:
                    self.phase = Phase.AWAITING_CONFIRMATION
                    logger.info("All guesses submitted, waiting for scoring confirmation.")
                else:
                    logger.info("All guesses submitted.")
                    try:
                        self._score_and_rotate_nolock()
                    except RuntimeError:
                        # réponse annulée : la manche reste ouverte, le joueur peut la renvoyer
                        player.reset_round()
                        self.pending_answers -= 1
                        raise
            return player

    def confirm_scoring(self) -> RoundResult:
        """Action MJ : note la manche en attente."""
        with self._lock:
            if self.phase != Phase.AWAITING_CONFIRMATION:
                raise ScoringNotPendingError(f"Nothing to score (phase={self.phase.value})")
            return self._score_and_rotate_nolock()

    def advance_round(self) -> bool:
        """
        Passe à la manche suivante.
        No-op (False) si la manche est en cours, en attente MJ, ou si c'était la dernière :
        les doubles clics / requêtes rejouées sont attendus.
        """
        with self._lock:
            if self.phase == Phase.NOT_STARTED:
                logger.info("Advance ignored: game not started (%d/%d players)",
                            len(self.players), self.expected_player_count)
                return False
            if self.phase in (Phase.ROUND_OPEN, Phase.AWAITING_CONFIRMATION):
                logger.info("Advance ignored: round %d not scored yet", self.round_index)
                return False
            if self.round_index + 1 >= len(self.catalog):
                if self.phase != Phase.GAME_COMPLETE:
                    self.phase = Phase.GAME_COMPLETE
                    logger.info("End of game")
                else:
                    logger.info("Advance ignored: game already complete")
                return False
            self._open_round_nolock(self.round_index + 1)
            return True

    def _open_round_nolock(self, index: int) -> None:
        if index < 0 or index >= len(self.catalog) or index != self.round_index + 1:
            raise RuntimeError(f"Cannot open round {index} from {self.round_index}")
        if self.round_index < 0:
            logger.info("Game begin")
        self.round_index = index
        self.current_round = self.catalog[index]
        self.pending_answers = 0
        for player in self.players:
            player.reset_round()
        self.phase = Phase.ROUND_OPEN
        logger.info("Advanced to round %d: %s", index, self.current_round.describe())

    def _score_and_rotate_nolock(self) -> RoundResult:
        # tout ce qui peut lever passe avant la moindre écriture
        target = None if self.solo else self._next_active_nolock()
        result = self._score_round_nolock()
        self._apply_nolock(result)
        if target is not None:
            self._rotate_active_nolock(target)
        self.phase = Phase.ROUND_SCORED
        logger.info("Round %d scored.", self.round_index)
        return result

    def _score_round_nolock(self) -> RoundResult:
        rnd = self.current_round
        if self.solo:
            return score_solo(self.players[0], rnd, self.round_index, self.exact_tolerance)
        if rnd.final_round:
            return score_final(self.players, rnd, self.round_index, self.exact_tolerance)
        return score_multiplayer(self.players, rnd, self.round_index, self.exact_tolerance)

    def _apply_nolock(self, result: RoundResult) -> None:
        for player in self.players:
            gained = result.awards.get(player.name, 0)
            if gained:
                player.score += gained
                logger.info("%s scored %d points", player.name, gained)
        if result.bonus_to:
            if result.bonus_stolen:
                logger.info("%s stole the 5 point bonus!", result.bonus_to)
            else:
                logger.info("%s scored a 5 point bonus!", result.bonus_to)
        self.history.append(result)

    def _next_active_nolock(self) -> Optional[int]:
        """Le rôle actif suit la configuration de la manche SUIVANTE (pas un simple tourniquet)."""
        upcoming = self.round_index + 1
        if upcoming >= len(self.catalog):
            return None
        target = self.catalog[upcoming].active_player
        if not 0 <= target < len(self.players):
            raise RuntimeError(f"Round {upcoming} designates missing player index {target}")
        return target

    def _rotate_active_nolock(self, target: int) -> None:
        for index, player in enumerate(self.players):
            player.active = index == target
        logger.info("Active player for round %d: %s", self.round_index + 1, self.players[target].name)

    # -----------------------------
    # Lecture
    # -----------------------------
    def snapshot(self) -> GameSnapshot:
        """
        Copie cohérente de l'état pour l'affichage (prise sous verrou).
        La note du joueur actif est visible dès sa réponse (les autres se positionnent dessus) ;
        les choix des adversaires restent cachés jusqu'à la notation.
        """
        with self._lock:
            revealed = self.phase in (Phase.ROUND_SCORED, Phase.GAME_COMPLETE)
            players = [
                PlayerView(
                    name=p.name,
                    score=p.score,
                    answered=p.answered,
                    active=p.active,
                    guess=p.guess if revealed or (p.active and p.answered) else None,
                    choice=p.choice if revealed else None,
                )
                for p in self.players
            ]
            return GameSnapshot(
                game_name=self.game_name,
                phase=self.phase.value,
                started=self.started,
                round_index=self.round_index,
                total_rounds=len(self.catalog),
                current_round=self.current_round,
                expected_player_count=self.expected_player_count,
                pending_answers=self.pending_answers,
                players=players,
                last_result=self.history[-1].model_copy(deep=True) if self.history else None,
                history=[r.model_copy(deep=True) for r in self.history],
            )

    def leaderboard(self) -> List[dict]:
        """Classement par score décroissant (ordre d'arrivée à égalité)."""
        with self._lock:
            ranked = sorted(self.players, key=lambda p: p.score, reverse=True)
            return [{"name": p.name, "score": p.score, "active": p.active} for p in ranked]


def create_session(
    rounds: Sequence[Round],
    player_count: int,
    game_name: str = "",
    require_confirmation: bool = False,
    exact_tolerance: float = 0.0,
) -> GameSession:
    session = GameSession(
        catalog=tuple(rounds),
        expected_player_count=player_count,
        game_name=game_name,
        require_confirmation=require_confirmation,
        exact_tolerance=exact_tolerance,
    )
    logger.info("Created game %r (%d rounds, %d players)", game_name, len(session.catalog), player_count)
    return session
