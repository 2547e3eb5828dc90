"""Per-form survey completion.

Completion is always resolved against the responses of one specific form.
The legacy ``surveyed`` flag on voter records means "completed any form" and
is never used here.
"""
