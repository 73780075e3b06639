"""Artist metadata registration"""
import logging
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Session
from clio_badges.models.db import Artist

logger = logging.getLogger(__name__)

def placeholder_token_address(artist_id: int) -> str:
    """Zero-padded stand-in until the registry reports the real token"""
    return '0x' + format(artist_id, 'x').rjust(40, '0')

class ArtistDirectory:
    """Creates and updates artist metadata rows"""

    def __init__(self, session: Session):
        self.session = session

    def get(self, artist_id: int) -> Optional[Artist]:
        return self.session.get(Artist, artist_id)

    def ensure_exists(self, artist_id: int, created_at: Optional[datetime] = None) -> Artist:
        """Return the artist, creating a genre-less placeholder if it is unknown"""
        artist = self.get(artist_id)
        if artist:
            return artist

        artist = Artist(
            artist_id=artist_id,
            token_address=placeholder_token_address(artist_id),
            name=f"Artist {artist_id}",
            handle=f"@artist{artist_id}",
            genre=None,
            created_at=created_at or datetime.utcnow()
        )
        self.session.add(artist)
        self.session.flush()
        logger.info(f"Auto-created placeholder for artist {artist_id}")
        return artist

    def register(self, artist_id: int, name: Optional[str] = None, handle: Optional[str] = None,
                 genre: Optional[str] = None, token_address: Optional[str] = None) -> Artist:
        """Register an artist or fill in a placeholder; only given fields are updated"""
        if artist_id < 0:
            raise ValueError(f"Invalid artist id: {artist_id}")

        artist = self.ensure_exists(artist_id)
        if name is not None:
            artist.name = name
        if handle is not None:
            artist.handle = handle
        if genre is not None:
            artist.genre = genre
        if token_address is not None:
            artist.token_address = token_address.lower()
        self.session.flush()
        return artist
