# Overview: Change notifications published by the record store.

from blinker import Namespace

_signals = Namespace()

# sender: table name
# kwargs: action ("insert" | "update" | "delete"), record_id
record_changed = _signals.signal("record-changed")
