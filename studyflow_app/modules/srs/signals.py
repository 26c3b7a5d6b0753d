from blinker import Namespace

_signals = Namespace()

# Emitted after a quality rating has been persisted
# Arguments:
# - sender: the SrsService instance
# - user_id: int
# - card_id: int
# - quality: int (1-5)
# - state: dict (ReviewState.to_dict() of the new state)
card_reviewed = _signals.signal('card-reviewed')
