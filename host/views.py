from __future__ import annotations

from typing import Dict, List, Optional

from holdem.models import Game, HandSummary, Pot, Seat


def _pot_payload(pot: Pot) -> Dict[str, object]:
    return {
        "amount": pot.amount,
        "eligible": list(pot.eligible_player_ids),
        "level": pot.level,
        "main": pot.is_main_pot,
    }


def _seat_payload(num: int, seat: Seat) -> Dict[str, object]:
    return {
        "seat": num,
        "player_id": seat.player_id,
        "name": seat.display_name,
        "chips": seat.chips,
        "current_bet": seat.current_bet,
        "total_bet": seat.total_bet,
        "status": seat.status.value,
        "has_acted": seat.has_acted,
        "is_dealer": seat.is_dealer,
        "is_small_blind": seat.is_small_blind,
        "is_big_blind": seat.is_big_blind,
    }


def summary_payload(summary: HandSummary) -> Dict[str, object]:
    return {
        "hand_number": summary.hand_number,
        "end_reason": summary.end_reason.value,
        "winners": list(summary.winners),
        "winnings": dict(summary.winnings),
        "pot": summary.pot,
        "pots": [_pot_payload(pot) for pot in summary.pots],
        "boards": [list(board) for board in summary.boards],
        "shown_hands": {pid: list(cards) for pid, cards in summary.shown_hands.items()},
        "hand_names": dict(summary.hand_names),
    }


def public_state(game: Game, viewer_id: Optional[str] = None) -> Dict[str, object]:
    """Table state as one viewer may see it: no deck, no hole cards.

    Hole cards travel separately and only to their owner.
    """
    table = game.table
    seats: List[Dict[str, object]] = [_seat_payload(num, seat) for num, seat in game.occupied()]
    payload: Dict[str, object] = {
        "game_id": game.game_id,
        "status": game.status.value,
        "hand_number": game.hand_number,
        "blinds": {"small": game.meta.blinds.small, "big": game.meta.blinds.big},
        "max_players": game.meta.max_players,
        "stage": table.stage.value,
        "round": table.current_round.value if table.current_round else None,
        "pot": table.pot,
        "community": list(table.community_cards),
        "current_bet": table.current_bet,
        "min_raise": table.min_raise,
        "dealer_seat": table.dealer_seat,
        "current_turn": table.current_turn,
        "turn_id": table.current_turn_id,
        "turn_expires_at": table.turn_expires_at,
        "is_auto_next": table.is_auto_next,
        "run_it_twice_votes": list(table.run_it_twice_votes),
        "seats": seats,
        "last_hand": summary_payload(table.last_hand) if table.last_hand else None,
    }

    seat = game.seat_of(viewer_id) if viewer_id else None
    if seat is not None:
        to_call = max(table.current_bet - seat.current_bet, 0)
        payload["you"] = {
            "player_id": seat.player_id,
            "chips": seat.chips,
            "to_call": min(to_call, seat.chips),
            "min_raise": table.current_bet + table.min_raise - seat.current_bet,
            "your_turn": table.current_turn == seat.player_id,
        }
    return payload
