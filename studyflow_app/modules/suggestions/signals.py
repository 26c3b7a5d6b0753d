from blinker import Namespace

_signals = Namespace()

# Emitted after a task has been created from a suggestion
# Arguments:
# - sender: the SuggestionService instance
# - user_id: int
# - suggestion_id: str
# - task_id: int
suggestion_accepted = _signals.signal('suggestion-accepted')
