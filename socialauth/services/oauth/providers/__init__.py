"""OAuth provider strategies."""
from .base import OAuthStrategy
from .facebook import FacebookOAuthStrategy
from .github import GitHubOAuthStrategy
from .google import GoogleOAuthStrategy
from .linkedin import LinkedInOAuthStrategy
from .microsoft import MicrosoftOAuthStrategy
from .twitter import TwitterOAuthStrategy

STRATEGY_CLASSES: dict[str, type[OAuthStrategy]] = {
    cls.name: cls
    for cls in (
        GoogleOAuthStrategy,
        FacebookOAuthStrategy,
        GitHubOAuthStrategy,
        LinkedInOAuthStrategy,
        MicrosoftOAuthStrategy,
        TwitterOAuthStrategy,
    )
}

__all__ = [
    "OAuthStrategy",
    "GoogleOAuthStrategy",
    "FacebookOAuthStrategy",
    "GitHubOAuthStrategy",
    "LinkedInOAuthStrategy",
    "MicrosoftOAuthStrategy",
    "TwitterOAuthStrategy",
    "STRATEGY_CLASSES",
]
