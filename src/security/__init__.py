"""Abuse protection: per-action rate limits with violation tracking"""
