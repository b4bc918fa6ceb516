"""Scraping package - fetching, page processing, Tor monitoring and job scheduling."""
