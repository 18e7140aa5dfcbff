"""movie-projector.

Builds self-contained "projector" artifacts by combining a pre-built player
executable with an embedded movie payload appended in a player-specific
binary layout.
"""

__all__: list[str] = ["__version__"]

__version__: str = "0.1.0"
