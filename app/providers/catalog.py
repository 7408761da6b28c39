from __future__ import annotations

"""Built-in provider catalog."""

from typing import Any, Iterable, List, Optional

from loguru import logger

from .base import StreamProvider
from .direct import DirectHlsProvider
from .embeds import CustomEmbedProvider, EmbedTemplateProvider
from .registry import ProviderRegistry
from .scraping import ScrapingProvider


def default_providers(fetcher: Any = None) -> List[StreamProvider]:
    """Return fresh instances of every built-in provider, in default priority."""
    return [
        DirectHlsProvider(key="direct-hls", name="Custom HLS", priority=0),
        ScrapingProvider(
            key="vidsrcxyz-direct",
            name="VidSrc (direct)",
            priority=1,
            movie_template="https://vidsrc.xyz/embed/movie/{id}",
            tv_template="https://vidsrc.xyz/embed/tv/{id}/{season}/{episode}",
            fetcher=fetcher,
        ),
        ScrapingProvider(
            key="embedsu-direct",
            name="Embed.su (direct)",
            priority=2,
            movie_template="https://embed.su/embed/movie/{id}",
            tv_template="https://embed.su/embed/tv/{id}/{season}/{episode}",
            fetcher=fetcher,
        ),
        EmbedTemplateProvider(
            key="videasy",
            name="Videasy",
            priority=10,
            movie_template="https://player.videasy.net/movie/{id}",
            tv_template="https://player.videasy.net/tv/{id}/{season}/{episode}",
            quality="1080p",
        ),
        EmbedTemplateProvider(
            key="vidsrcxyz",
            name="VidSrc",
            priority=11,
            movie_template="https://vidsrc.xyz/embed/movie/{id}",
            tv_template="https://vidsrc.xyz/embed/tv/{id}/{season}/{episode}",
        ),
        EmbedTemplateProvider(
            key="vidsrcpro",
            name="VidSrc Pro",
            priority=12,
            movie_template="https://vidsrc.pro/embed/movie/{id}",
            tv_template="https://vidsrc.pro/embed/tv/{id}/{season}/{episode}",
        ),
        EmbedTemplateProvider(
            key="superembed",
            name="SuperEmbed",
            priority=13,
            movie_template="https://multiembed.mov/?video_id={id}",
            tv_template="https://multiembed.mov/?video_id={id}&s={season}&e={episode}",
        ),
        EmbedTemplateProvider(
            key="multiembed",
            name="MultiEmbed",
            priority=14,
            movie_template="https://multiembed.mov?video_id={id}&tmdb=1",
            tv_template="https://multiembed.mov?video_id={id}&tmdb=1&s={season}&e={episode}",
        ),
        EmbedTemplateProvider(
            key="embedsu",
            name="Embed.su",
            priority=15,
            movie_template="https://embed.su/embed/movie/{id}",
            tv_template="https://embed.su/embed/tv/{id}/{season}/{episode}",
            quality="hd",
        ),
        EmbedTemplateProvider(
            key="autoembed",
            name="AutoEmbed",
            priority=16,
            movie_template="https://player.autoembed.cc/embed/movie/{id}",
            tv_template="https://player.autoembed.cc/embed/tv/{id}/{season}/{episode}",
        ),
        CustomEmbedProvider(key="custom", name="Custom Embed", priority=99),
    ]


def build_default_registry(
    fetcher: Any = None,
    *,
    order: Optional[Iterable[str]] = None,
    disabled: Optional[Iterable[str]] = None,
) -> ProviderRegistry:
    """
    Build the registry of built-in providers.

    Keys listed in `order` are re-prioritised to their list index, so they run
    first and in that order; the remaining providers keep their default
    priority offset behind them. Keys in `disabled` are not registered.

    Parameters:
        fetcher: UpstreamFetcher shared by the scraping providers.
        order (Iterable[str] | None): Preferred provider keys (PROVIDER_ORDER).
        disabled (Iterable[str] | None): Provider keys to leave out (PROVIDERS_DISABLED).

    Returns:
        ProviderRegistry: Registry holding the enabled built-in providers.
    """
    order_list = [k.strip().lower() for k in (order or []) if k and k.strip()]
    disabled_set = {k.strip().lower() for k in (disabled or []) if k and k.strip()}
    providers = default_providers(fetcher)
    known = {p.key for p in providers}

    for key in order_list:
        if key not in known:
            logger.warning("PROVIDER_ORDER names unknown provider '{}'", key)
    for key in disabled_set - known:
        logger.warning("PROVIDERS_DISABLED names unknown provider '{}'", key)

    registry = ProviderRegistry()
    offset = len(order_list)
    for provider in providers:
        if provider.key in disabled_set:
            logger.info("Provider {} disabled by configuration", provider.key)
            continue
        if provider.key in order_list:
            provider.priority = order_list.index(provider.key)
        else:
            provider.priority += offset
        registry.register(provider)

    logger.debug(
        "Provider order: {}", ", ".join(p.key for p in registry.providers())
    )
    return registry
