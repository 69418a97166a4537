from typing import Iterable, List, Optional

MAX_HUBS = 8


def build_hub_list(primary: Optional[str], fallbacks: Iterable[str], allow_fallback: bool,
                   exclude: Iterable[str] = (), max_hubs: int = MAX_HUBS) -> List[str]:
    """Primary hub first, then fallbacks in configured order.

    Codes are upper-cased and deduplicated; anything in `exclude` (the
    origin and destination) is dropped, and the list is capped at max_hubs.
    """
    skip = {code.upper() for code in exclude}
    candidates: List[str] = []
    if primary:
        candidates.append(primary)
    if allow_fallback:
        candidates.extend(fallbacks)

    hubs: List[str] = []
    for code in candidates:
        code = (code or "").strip().upper()
        if not code or code in skip or code in hubs:
            continue
        hubs.append(code)
        if len(hubs) >= max_hubs:
            break
    return hubs
