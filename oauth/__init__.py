"""
oauth — OAuth authorization for data pipes.

Provides:
  • signed state tokens carrying the pipe id + return URL
  • per-pipe authentication strategies and the authenticator holding them
  • the orchestrator linking the authenticator, connectors and pipe store
"""
