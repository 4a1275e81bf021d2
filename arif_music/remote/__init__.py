"""
Remote access to the Arif Music REST API.

Usage:
    from arif_music.remote import RemoteGateway

    gateway = RemoteGateway(config.api.base_url, session)
"""

from arif_music.remote.gateway import RemoteGateway, map_error

__all__ = [
    "RemoteGateway",
    "map_error",
]
