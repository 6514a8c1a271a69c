"""Site-specific movie and actor metadata providers."""