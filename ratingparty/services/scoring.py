"""
Service: scoring.py
Rôle:
- Calculer les points d'une manche à partir des saisies des joueurs (fonctions pures).
- Aucune mutation : le résultat (`RoundResult`) est appliqué ensuite par `GameSession`.

Règles:
- Multijoueur : chaque adversaire classe la note réelle par rapport à la note du joueur actif
  (higher / lower / exact). Bonne réponse -> `points` pour lui ; mauvaise -> `points` pour l'actif.
  Sur "exact", un seul bonus de 5 points : volé par le premier adversaire ayant répondu "exact",
  sinon gagné par le joueur actif.
- Solo : écart absolu < 1.1 -> `points`, écart nul -> +5.
- Manche finale : tout le monde note ; la note la plus proche gagne `points` (à écart égal, une note
  en dessous bat une note au-dessus), une note exacte ajoute le bonus.
"""
from __future__ import annotations

from typing import Dict, Sequence

from ratingparty.models.game import Outcome, RoundResult
from ratingparty.models.player import Player
from ratingparty.models.round import Round

EXACT_BONUS = 5
SOLO_TOLERANCE = 1.1


def is_exact(rating: float, guess: float, tolerance: float = 0.0) -> bool:
    """Égalité des notes ; tolérance 0.0 = comparaison stricte des flottants."""
    if tolerance <= 0:
        return rating == guess
    return abs(rating - guess) <= tolerance


def classify(rating: float, target: float, tolerance: float = 0.0) -> Outcome:
    """Place la note réelle par rapport à la note du joueur actif."""
    if is_exact(rating, target, tolerance):
        return "exact"
    return "higher" if rating > target else "lower"


def _empty_awards(players: Sequence[Player]) -> Dict[str, int]:
    return {p.name: 0 for p in players}


def score_multiplayer(
    players: Sequence[Player],
    rnd: Round,
    round_index: int,
    tolerance: float = 0.0,
) -> RoundResult:
    active = next((p for p in players if p.active), None)
    if active is None:
        raise RuntimeError("No active player to score against")

    outcome = classify(rnd.rating, active.guess, tolerance)
    awards = _empty_awards(players)
    pool = 0
    stealer = None
    for player in players:
        if player is active:
            continue
        if player.choice == outcome:
            awards[player.name] += rnd.points
            if outcome == "exact" and stealer is None:
                stealer = player
        else:
            pool += rnd.points
    awards[active.name] += pool

    bonus_to = None
    if outcome == "exact":
        bonus_to = stealer.name if stealer is not None else active.name
        awards[bonus_to] += EXACT_BONUS

    return RoundResult(
        round_index=round_index,
        mode="multiplayer",
        outcome=outcome,
        awards=awards,
        bonus_to=bonus_to,
        bonus_stolen=stealer is not None,
    )


def score_solo(player: Player, rnd: Round, round_index: int, tolerance: float = 0.0) -> RoundResult:
    awards = {player.name: 0}
    bonus_to = None
    difference = abs(rnd.rating - player.guess)
    if difference < SOLO_TOLERANCE:
        awards[player.name] += rnd.points
        if is_exact(difference, 0.0, tolerance):
            awards[player.name] += EXACT_BONUS
            bonus_to = player.name
    return RoundResult(round_index=round_index, mode="solo", awards=awards, bonus_to=bonus_to)


def score_final(
    players: Sequence[Player],
    rnd: Round,
    round_index: int,
    tolerance: float = 0.0,
) -> RoundResult:
    awards = _empty_awards(players)
    # (écart, au-dessus ?, ordre d'arrivée) : en dessous gagne à écart égal
    ranked = sorted(
        enumerate(players),
        key=lambda item: (abs(item[1].guess - rnd.rating), item[1].guess > rnd.rating, item[0]),
    )
    winner = ranked[0][1]
    awards[winner.name] += rnd.points
    bonus_to = None
    if is_exact(rnd.rating, winner.guess, tolerance):
        awards[winner.name] += EXACT_BONUS
        bonus_to = winner.name
    return RoundResult(round_index=round_index, mode="final", awards=awards, bonus_to=bonus_to)
