"""Configuration, logging, persistence and request plumbing"""
