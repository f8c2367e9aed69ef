import pytest

from users.user_agents import detect_device, parse_browser

EDGE = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36 Edg/120.0.2210.91"
)
OPERA = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/119.0.0.0 Safari/537.36 OPR/105.0.0.0"
)
SAFARI_IPHONE = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_1 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.1 Mobile/15E148 Safari/604.1"
)
FIREFOX = "Mozilla/5.0 (X11; Linux x86_64; rv:121.0) Gecko/20100101 Firefox/121.0"
IPAD = (
    "Mozilla/5.0 (iPad; CPU OS 16_6 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/16.6 Mobile/15E148 Safari/604.1"
)


@pytest.mark.parametrize(
    "ua,expected",
    [
        (EDGE, "Edge 120.0"),
        (OPERA, "Opera 105.0"),
        (SAFARI_IPHONE, "Safari 17.1"),
        (FIREFOX, "Firefox 121.0"),
        ("curl/8.4.0", None),
        ("", None),
    ],
)
def test_parse_browser(ua, expected):
    assert parse_browser(ua) == expected


@pytest.mark.parametrize(
    "ua,expected",
    [(EDGE, "desktop"), (SAFARI_IPHONE, "mobile"), (IPAD, "tablet"), (None, None)],
)
def test_detect_device(ua, expected):
    assert detect_device(ua) == expected
