"""HTTP blueprints for game progress: save, load and leaderboard."""
