"""
Tallybot — Weekly Activity Leaderboard & Moderation Bot for Discord
===================================================================
Counts every member's messages, publishes a weekly leaderboard that hands
the top poster a reward role, collects suggestions into a review channel,
and exposes moderation actions through chat commands and a small HTTP
dashboard API.

Package layout::

    tallybot/
    ├── config.py          # config.yaml + environment → typed config
    ├── constants.py       # Presentation constants & fixed limits
    ├── engine/
    │   ├── counter_store.py  # Per-user message tally + JSON snapshot
    │   ├── cooldown.py       # Per-(user, command) rate limiting
    │   ├── mute_ledger.py    # Pre-mute role snapshots
    │   ├── ranking.py        # Top-N ranking + announcement text
    │   └── commands.py       # Prefixed command parsing
    ├── services/
    │   ├── platform.py           # Bounded-timeout Discord calls
    │   ├── leaderboard_service.py  # The weekly cycle
    │   ├── moderation_service.py   # kick/ban/timeout/mute/clear
    │   ├── audit.py              # Audit records → logs channel
    │   ├── embeds.py             # Embed builders
    │   └── log_buffer.py         # Ring buffer behind /api/logs
    ├── bot/
    │   ├── core.py        # Bot subclass, cog loader, dashboard startup
    │   ├── router.py      # Prefix command router
    │   └── cogs/          # activity, leaderboard, suggestions,
    │                      # moderation, help, tasks
    └── api/
        ├── main.py        # FastAPI app factory
        ├── deps.py        # Dependencies + bearer auth
        ├── server.py      # uvicorn embedded in the bot loop
        └── routes/        # public, admin, moderation
"""

__version__ = "0.1.0"
