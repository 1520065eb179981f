"""Game domain services: teams, target assignment and eliminations.

This package contains the domain logic that HTTP routes import, keeping
transport concerns separated from the target graph:

- teams: partition live players into teams of one or two
- assignments: seed the circular target graph
- elimination: resolve kill reports and repair the graph
- queries / leaderboard: read paths
- directory / registry: players, roles and game lifecycle
"""
