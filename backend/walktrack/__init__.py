"""
WalkTrack Backend
=================

Step tracking with offline sync.

HOW IT'S ORGANIZED:
------------------
- models/    = Data structures (what does a step reading look like?)
- services/  = Workers (queue, sync, storage, aggregation, HTTP clients)
- routers/   = API endpoints (the doors into our apps)
- main.py    = The server: stores readings, serves summaries
- agent.py   = The client: counts steps, queues them, syncs them
"""
