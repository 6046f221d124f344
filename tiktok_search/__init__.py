"""TikTok web search request building (signing via xbogus)."""
