from enum import Enum


class FollowBehavior(str, Enum):
    """Which discovered links are eligible to be crawled next."""

    ANY = "any"
    SAME_DOMAIN = "same-domain"
    RELATED_SUBDOMAINS = "related-subdomains"
    NONE = "none"

    @classmethod
    def parse(cls, value) -> "FollowBehavior":
        if isinstance(value, cls):
            return value
        if value is None or (isinstance(value, str) and value.strip() == ""):
            return cls.SAME_DOMAIN
        mode = str(value).strip().lower().replace("_", "-")
        if mode == "subdomains":
            return cls.RELATED_SUBDOMAINS
        try:
            return cls(mode)
        except ValueError:
            raise ValueError(f"Unknown follow behavior: {value!r}") from None
