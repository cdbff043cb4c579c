from streamcheck.sources.base import BackendClient
from streamcheck.sources.riot import RiotMatchClient
from streamcheck.sources.twitch import AppTokenCache, TwitchStreamClient, parse_duration

__all__ = [
    "BackendClient",
    "RiotMatchClient",
    "AppTokenCache",
    "TwitchStreamClient",
    "parse_duration",
]
