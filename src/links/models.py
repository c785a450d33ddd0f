# Redis key layout. Mapping keys share the "url:" prefix so that
# URL_KEY_PATTERN matches every stored link and nothing else.

URL_KEY_PREFIX = "url:"
URL_KEY_PATTERN = URL_KEY_PREFIX + "*"

TOTAL_CLICKS_KEY = "stats:total_clicks"
UNIQUE_VISITORS_KEY = "stats:unique_visitors"
CLICK_LOGS_KEY = "click_logs"


def url_key(code: str) -> str:
    return f"{URL_KEY_PREFIX}{code}"


def code_from_url_key(key: str) -> str:
    return key[len(URL_KEY_PREFIX):]


def created_key(code: str) -> str:
    return f"created:{code}"


def clicks_key(code: str) -> str:
    return f"clicks:{code}"


def last_click_key(code: str) -> str:
    return f"last_click:{code}"


def daily_clicks_key(day: str) -> str:
    return f"stats:clicks:{day}"


def rate_limit_key(client_ip: str) -> str:
    return f"rate_limit:{client_ip}"
