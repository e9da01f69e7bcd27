"""Threadhub: communities and threads synchronized with Clerk organizations."""
