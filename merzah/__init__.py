"""
Merzah — Mosque Community Events Backend
=========================================
Mosques host events, members favorite mosques and RSVP to events, and a
periodic job keeps recurring events pointed at their next occurrence.

Package layout::

    merzah/
    ├── __main__.py        # Rotation worker (``python -m merzah``)
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Allow-lists and shared limits
    ├── errors.py          # Error taxonomy
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   └── models.py      # ORM models (users, mosques, events, edges)
    ├── engine/
    │   ├── clock.py       # Injected clocks
    │   ├── recurrence.py  # next_date() + duration → end date
    │   └── eligibility.py # Should this event rotate now?
    ├── services/
    │   ├── event_service.py       # Event lifecycle + RSVP
    │   ├── mosque_service.py      # Mosques + favorites
    │   ├── audit_service.py       # audit_log writes + listing
    │   ├── rotation_service.py    # run_rotation() batch
    │   └── rotation_scheduler.py  # Periodic asyncio loop
    └── api/
        ├── main.py        # FastAPI app
        ├── deps.py        # JWT identity + engine dependencies
        └── routes/        # Events, mosques, admin endpoints
"""

__version__ = "0.1.0"
