"""UPI payment link generation."""

from urllib.parse import urlencode

from utils.currency import CURRENCY, format_amount


UPI_SCHEME = "upi://pay"


def build_upi_link(upi_id: str, payee_name: str, amount_paise: int, note: str) -> str:
    """
    Build a upi://pay URI.

    Keys are always emitted in the order pa, pn, am, cu, tn and values are
    encoded with standard query-string rules (spaces become '+'), the same
    way URLSearchParams serializes them on the client.
    """
    params = [
        ("pa", upi_id),
        ("pn", payee_name),
        ("am", format_amount(amount_paise)),
        ("cu", CURRENCY),
        ("tn", note),
    ]
    return f"{UPI_SCHEME}?{urlencode(params)}"
