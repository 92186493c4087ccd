"""Skillgate CLI: inspect, query and check skills from the terminal."""
