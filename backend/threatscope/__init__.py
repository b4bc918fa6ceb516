"""Threatscope backend - Tor-routed scrape orchestration and threat classification."""
