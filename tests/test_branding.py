"""Tests for harvester.services.branding."""

from bs4 import BeautifulSoup

from harvester.services.branding import (
    MAX_PRODUCT_IMAGES,
    collect_font_families,
    extract_branding,
    is_tracking_pixel,
    rank_colors,
)

_BASE = "https://shop.example.com"


def _branding(html: str):
    return extract_branding(html, BeautifulSoup(html, "lxml"), _BASE)


# ---------------------------------------------------------------------------
# Colours
# ---------------------------------------------------------------------------

class TestRankColors:
    def test_ranked_by_count(self):
        css = "a{color:#112233} b{color:#445566} c{color:#445566} d{color:#445566} e{color:#112233}"
        assert rank_colors(css) == ["#445566", "#112233"]

    def test_ties_keep_first_seen_order(self):
        css = "a{color:#abcdef} b{color:#123456} c{color:rgb(1, 2, 3)}"
        assert rank_colors(css) == ["#abcdef", "#123456", "rgb(1, 2, 3)"]

    def test_neutral_colors_ignored(self):
        css = "a{color:#FFF} b{color:#000000} c{color:#333} d{color:#ff0000}"
        assert rank_colors(css) == ["#ff0000"]

    def test_empty(self):
        assert rank_colors("") == []


class TestColorExtraction:
    def test_theme_color_is_primary_and_removed_from_ranking(self):
        html = (
            '<html><head><meta name="theme-color" content="#e60012">'
            "<style>a{color:#e60012} b{color:#e60012} c{color:#0055aa} d{color:#22aa22}</style>"
            "</head><body></body></html>"
        )
        branding = _branding(html)
        assert branding.primary_color == "#e60012"
        assert branding.secondary_color == "#0055aa"
        assert branding.accent_color == "#22aa22"

    def test_ranking_fills_primary_without_theme_color(self):
        html = "<html><head><style>a{color:#0055aa} b{color:#0055aa} c{color:#22aa22}</style></head></html>"
        branding = _branding(html)
        assert branding.primary_color == "#0055aa"
        assert branding.secondary_color == "#22aa22"
        assert branding.accent_color is None

    def test_no_colors(self):
        branding = _branding("<html><body><p>plain</p></body></html>")
        assert branding.primary_color is None
        assert branding.secondary_color is None


# ---------------------------------------------------------------------------
# Fonts
# ---------------------------------------------------------------------------

class TestFonts:
    def test_heading_and_body(self):
        html = (
            "<html><head><style>"
            "h1{font-family:'Playfair Display', serif} body{font-family: Inter, sans-serif}"
            "p{font-family: sans-serif}"
            "</style></head></html>"
        )
        branding = _branding(html)
        assert branding.heading_font == "Playfair Display"
        assert branding.body_font == "Inter"

    def test_google_fonts_link(self):
        html = (
            '<html><head><link rel="stylesheet" '
            'href="https://fonts.googleapis.com/css2?family=Open+Sans:wght@400;700&display=swap">'
            "</head></html>"
        )
        soup = BeautifulSoup(html, "lxml")
        assert collect_font_families(soup) == ["Open Sans"]

    def test_single_font_used_for_both(self):
        html = "<html><head><style>body{font-family: Roboto, Arial}</style></head></html>"
        branding = _branding(html)
        assert branding.heading_font == "Roboto"
        assert branding.body_font == "Roboto"

    def test_generic_only(self):
        html = "<html><head><style>body{font-family: inherit} p{font-family: serif}</style></head></html>"
        branding = _branding(html)
        assert branding.heading_font is None
        assert branding.body_font is None


# ---------------------------------------------------------------------------
# Logo, favicon, hero
# ---------------------------------------------------------------------------

class TestImages:
    def test_logo_falls_through_tracking_pixel(self):
        html = (
            '<html><body><header><img alt="Logo" src="/pixel.gif"></header>'
            '<a href="/"><img src="/brand/mark.png" alt="Acme"></a></body></html>'
        )
        assert _branding(html).logo_url == f"{_BASE}/brand/mark.png"

    def test_logo_in_header(self):
        html = '<html><body><header><img class="site-logo" src="//cdn.example.com/l.svg"></header></body></html>'
        assert _branding(html).logo_url == "https://cdn.example.com/l.svg"

    def test_favicon_prefers_shortcut_icon_over_touch_icon(self):
        html = (
            '<html><head><link rel="apple-touch-icon" href="/touch.png">'
            '<link rel="shortcut icon" href="/favicon.ico"></head></html>'
        )
        assert _branding(html).favicon_url == f"{_BASE}/favicon.ico"

    def test_hero_from_background_image(self):
        html = (
            "<html><body>"
            "<div class=\"splash\" style=\"background-image: url('/img/hero.jpg')\"></div>"
            "</body></html>"
        )
        assert _branding(html).hero_image_url == f"{_BASE}/img/hero.jpg"

    def test_hero_from_class(self):
        html = '<html><body><div class="hero"><img src="/img/h.jpg"></div></body></html>'
        assert _branding(html).hero_image_url == f"{_BASE}/img/h.jpg"

    def test_hero_falls_back_to_og_image(self):
        html = '<html><head><meta property="og:image" content="/og.png"></head><body></body></html>'
        assert _branding(html).hero_image_url == f"{_BASE}/og.png"

    def test_no_hero(self):
        assert _branding("<html><body><p>x</p></body></html>").hero_image_url is None


class TestProductImages:
    def test_filters_and_dedupes(self):
        html = (
            "<html><body>"
            '<img src="/a/product-1.jpg">'
            '<img src="/a/product-1.jpg">'
            '<img src="/a/big.jpg" width="400" height="300">'
            '<img src="/a/small.jpg" width="100" height="100">'
            '<div class="product-tile"><img src="/a/tile.jpg"></div>'
            '<img src="/tracking/product.gif">'
            "</body></html>"
        )
        assert _branding(html).product_images == [
            f"{_BASE}/a/product-1.jpg",
            f"{_BASE}/a/big.jpg",
            f"{_BASE}/a/tile.jpg",
        ]

    def test_capped(self):
        imgs = "".join(f'<img src="/p/product-{i}.jpg">' for i in range(15))
        images = _branding(f"<html><body>{imgs}</body></html>").product_images
        assert len(images) == MAX_PRODUCT_IMAGES
        assert images[0] == f"{_BASE}/p/product-0.jpg"


class TestTrackingPixel:
    def test_data_uri(self):
        assert is_tracking_pixel("data:image/png;base64,AAAA") is True

    def test_keywords(self):
        assert is_tracking_pixel("https://x.com/spacer.png") is True
        assert is_tracking_pixel("https://x.com/img/1x1.png") is True

    def test_gif_requires_small_explicit_dimension(self):
        assert is_tracking_pixel("https://x.com/anim.gif") is False
        assert is_tracking_pixel("https://x.com/anim.gif", width=1, height=1) is True
        assert is_tracking_pixel("https://x.com/anim.gif", width=300, height=200) is False

    def test_regular_image(self):
        assert is_tracking_pixel("https://x.com/photo.jpg") is False
