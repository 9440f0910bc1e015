"""HTTP entry points for the crossover engine."""
