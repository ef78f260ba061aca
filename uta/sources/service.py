from __future__ import annotations

import logging

from uta.cache.sqlite import CachedAuth, TokenCache, account_key
from uta.config import AppConfig
from uta.errors import AuthError, NotFoundError

from .apple_music import (
    API_BASE,
    AppleMusicClient,
    album_payload,
    build_session,
    catalog_headers,
    catalog_params,
    song_payload,
)
from .auth import authenticate
from .types import AlbumPayload, CatalogRef, TtmlPayload, parse_identifier

logger = logging.getLogger(__name__)


class LyricsService:
    def __init__(
        self,
        cfg: AppConfig,
        media_user_token: str,
        *,
        client: AppleMusicClient | None = None,
        cache: TokenCache | None = None,
        use_cache: bool = True,
    ):
        if not media_user_token or not media_user_token.strip():
            raise AuthError("A media-user-token is required")
        self.cfg = cfg
        self.media_user_token = media_user_token.strip()
        self.client = client or AppleMusicClient(
            build_session(cfg.user_agent), timeout_s=cfg.request_timeout_s
        )
        self.cache = (cache or TokenCache(cfg.cache_db_path)) if use_cache else None
        self._auth: CachedAuth | None = None
        self._auth_from_cache = False

    @property
    def _account(self) -> str:
        return account_key(self.media_user_token)

    def auth(self) -> CachedAuth:
        if self._auth is not None:
            return self._auth

        if self.cache is not None:
            cached = self.cache.get(self._account, max_age_s=self.cfg.token_ttl_s)
            if cached is not None:
                logger.debug("Using cached developer token (storefront=%s)", cached.storefront)
                self._auth = self._with_overrides(cached)
                self._auth_from_cache = True
                return self._auth

        if self.cfg.storefront and self.cfg.language:
            # no storefront lookup happens, so there is no account data to cache
            auth = authenticate(
                self.client,
                self.media_user_token,
                storefront=self.cfg.storefront,
                language=self.cfg.language,
            )
        else:
            # the cache holds the account's own storefront; overrides apply on read
            account_auth = authenticate(self.client, self.media_user_token)
            if self.cache is not None:
                self.cache.set(self._account, account_auth)
            auth = self._with_overrides(account_auth)
        self._auth = auth
        self._auth_from_cache = False
        return auth

    def _with_overrides(self, auth: CachedAuth) -> CachedAuth:
        if not (self.cfg.storefront or self.cfg.language):
            return auth
        return CachedAuth(
            developer_token=auth.developer_token,
            storefront=self.cfg.storefront or auth.storefront,
            language=self.cfg.language or auth.language,
        )

    def _catalog(self, kind: str, catalog_id: str) -> dict:
        auth = self.auth()
        url = f"{API_BASE}/catalog/{auth.storefront}/{kind}s/{catalog_id}"
        try:
            return self.client.get_json(
                url,
                headers=catalog_headers(auth.developer_token, self.media_user_token, auth.language),
                params=catalog_params(auth.language),
            )
        except AuthError:
            # a stale cached JWT must not be reused on the next run
            if self._auth_from_cache and self.cache is not None:
                self.cache.invalidate(self._account)
            raise

    def fetch_song(self, song_id: str, *, syllable: bool = False) -> TtmlPayload:
        payload = song_payload(self._catalog("song", song_id), syllable)
        if payload is None:
            kind = "syllable lyrics" if syllable else "lyrics"
            raise NotFoundError(f"Song {song_id} has no {kind}")
        return payload

    def fetch_album(self, album_id: str, *, syllable: bool = False) -> AlbumPayload:
        return album_payload(self._catalog("album", album_id), syllable)

    def fetch(self, identifier: str | CatalogRef, *, syllable: bool = False) -> TtmlPayload:
        """
        Single-resource fetch: a song, or the first album track that has lyrics.
        """
        ref = identifier if isinstance(identifier, CatalogRef) else parse_identifier(identifier)
        if ref.kind == "song":
            return self.fetch_song(ref.id, syllable=syllable)
        album = self.fetch_album(ref.id, syllable=syllable)
        for track in album.tracks:
            if track.payload is not None:
                return track.payload
        raise NotFoundError(f"No track of {album.display} has lyrics")
