class StateKeys:
    """Keys for data stored in ``st.session_state``."""

    LANG = "lang"
    SESSION_ID = "intake.session_id"
    WIZARD = "intake.wizard"
    DRAFTS = "intake.drafts"
    DRAFT_RESTORED = "intake.draft_restored"
