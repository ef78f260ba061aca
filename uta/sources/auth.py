from __future__ import annotations

import logging

import regex

from uta.cache.sqlite import CachedAuth
from uta.errors import AuthError

from .apple_music import API_BASE, WEB_ORIGIN, AppleMusicClient, catalog_headers, first_item

logger = logging.getLogger(__name__)

BROWSE_URL = WEB_ORIGIN + "/us/browse"
ASSETS_URL = WEB_ORIGIN + "/assets/{name}"
STOREFRONT_URL = API_BASE + "/me/storefront"

_BUNDLE_RE = regex.compile(r"index[^\"'\s/<>]*?\.js")
_JWT_RE = regex.compile(r'"(?P<key>eyJh[^"]*)"')


def find_bundle_name(html: str) -> str:
    m = _BUNDLE_RE.search(html)
    if not m:
        raise AuthError("Could not find the web player script on the browse page")
    return m.group(0)


def find_developer_token(js: str) -> str:
    m = _JWT_RE.search(js)
    if not m:
        raise AuthError("Could not find a developer token in the web player script")
    return m.group("key")


def scrape_developer_token(client: AppleMusicClient) -> str:
    """The web player ships its API JWT inside its main JS bundle."""
    bundle = find_bundle_name(client.get_text(BROWSE_URL))
    logger.debug("Web player bundle: %s", bundle)
    return find_developer_token(client.get_text(ASSETS_URL.format(name=bundle)))


def lookup_storefront(client: AppleMusicClient, developer_token: str, media_user_token: str) -> tuple[str, str]:
    """Returns (storefront id, default language tag) of the account."""
    data = client.get_json(STOREFRONT_URL, headers=catalog_headers(developer_token, media_user_token))
    item = first_item(data, "storefront")
    store_id = item.get("id")
    language = (item.get("attributes") or {}).get("defaultLanguageTag")
    if not store_id or not language:
        raise AuthError("Storefront response carries no id or language")
    return str(store_id), str(language)


def authenticate(
    client: AppleMusicClient,
    media_user_token: str,
    *,
    storefront: str | None = None,
    language: str | None = None,
) -> CachedAuth:
    jwt = scrape_developer_token(client)
    if storefront and language:
        return CachedAuth(developer_token=jwt, storefront=storefront, language=language)
    store_id, default_lang = lookup_storefront(client, jwt, media_user_token)
    return CachedAuth(
        developer_token=jwt,
        storefront=storefront or store_id,
        language=language or default_lang,
    )
