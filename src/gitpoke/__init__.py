"""GitPoke: activity badges and pokes for inactive GitHub users."""
