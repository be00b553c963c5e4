"""
Per-page SEO metadata for the public site.

Pages start from DEFAULT_SEO and override what they need; templates render the
result as <title>, description/keywords meta tags and OpenGraph/Twitter cards.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace

SITE_NAME = "Kothler"


@dataclass(frozen=True)
class SEOConfig:
    title: str
    description: str
    keywords: tuple[str, ...] = ()
    author: str = SITE_NAME
    canonical: str | None = None
    og_type: str = "website"
    og_image: str = "/og-image.jpg"
    twitter_card: str = "summary_large_image"
    twitter_site: str = "@kothler"
    robots: str = "index, follow"
    theme_color: str = "#000000"
    extra: dict[str, str] = field(default_factory=dict)

    def as_meta(self) -> dict:
        data = asdict(self)
        data["keywords"] = ", ".join(self.keywords)
        return data


DEFAULT_SEO = SEOConfig(
    title="Kothler | Precisión Y Crecimiento",
    description=(
        "Desarrollamos software a medida, sitios web y sistemas especializados para restaurantes, "
        "hoteles y más. Soluciones digitales que transforman tu negocio."
    ),
    keywords=(
        "desarrollo web",
        "software a medida",
        "sistemas para restaurantes",
        "sistemas para hoteles",
        "desarrollo de aplicaciones",
        "soluciones digitales",
        "Guadalajara",
        "México",
    ),
)

PAGE_SEO = {
    "home": {},
    "services": {
        "title": f"Servicios | {SITE_NAME}",
        "description": "Desarrollo web, software a medida y sistemas especializados para tu negocio.",
    },
    "team": {
        "title": f"Equipo | {SITE_NAME}",
        "description": "Conoce al equipo que hace posible cada proyecto.",
    },
    "portfolio": {
        "title": f"Portafolio | {SITE_NAME}",
        "description": "Proyectos que hemos entregado para nuestros clientes.",
    },
}


def page_seo(page: str, *, canonical: str | None = None, **overrides) -> SEOConfig:
    """Build the metadata for a named page; unknown pages get the defaults."""
    values = {**PAGE_SEO.get(page, {}), **overrides}
    if canonical:
        values["canonical"] = canonical
    if "keywords" in values:
        values["keywords"] = tuple(values["keywords"])
    return replace(DEFAULT_SEO, **values)
