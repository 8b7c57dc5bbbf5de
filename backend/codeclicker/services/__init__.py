"""Domain services: auth, save/load and leaderboard.

Routes stay thin and call into these; each service owns its own
transaction boundaries.
"""
