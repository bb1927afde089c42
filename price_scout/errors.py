"""Error taxonomy. Only SessionError ever reaches the caller, as an Error outcome."""


class PriceScoutError(Exception):
    """Base class for price_scout errors."""


class SourceFetchError(PriceScoutError):
    """Network or parse failure for one source. Recovered via the fallback cascade."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source
        self.message = message


class ChallengeUnresolved(SourceFetchError):
    """The anti-bot challenge was still showing after the completion delay."""


class RenderTimeout(SourceFetchError):
    """Loading plus extraction exceeded the renderer's hard timeout."""


class SessionError(PriceScoutError):
    """A fault not attributable to a single source."""
