"""
EventQuest — Gamified Event & Task Participation Ledger
=========================================================
Organizers publish events made of social tasks (follow, like, join, …);
participants join, complete tasks, and earn points tracked both globally
and per event.  Completion is gated on the external accounts a user has
linked (wallet, Twitter, Telegram, Discord, Google).

Package layout::

    eventquest/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Platform → task type table, TTL defaults
    ├── errors.py          # Typed error taxonomy raised by services
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   └── models.py      # All ORM models
    ├── engine/
    │   ├── eligibility.py # Platform → required linked identity
    │   ├── descriptions.py # Default task description builder
    │   ├── verification.py # Tagged verification records
    │   └── patches.py     # Partial-update structs
    ├── services/
    │   ├── event_service.py    # Event registry (create/update/delete/join)
    │   ├── task_service.py     # Task catalog + participant fan-out
    │   ├── ledger_service.py   # Completion ledger + point totals
    │   ├── identity_service.py # Wallet / OAuth / Telegram linking
    │   ├── oauth_state.py      # Signed, time-bounded OAuth state
    │   ├── token_staging.py    # OAuth1.0a request-token staging table
    │   ├── providers.py        # Discord / Google / Twitter clients
    │   └── wallet.py           # Wallet signature recovery
    └── api/
        ├── main.py        # FastAPI app
        ├── auth.py        # Wallet login → JWT
        ├── errors.py      # Error → HTTP status mapping
        └── routes/        # Events, tasks, identities, profile
"""

__version__ = "0.1.0"
