"""GitHub stargazer crawling."""
