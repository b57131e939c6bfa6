"""Command line entry points: process, enqueue, status and load."""
