"""
connectors — data source connectors for data pipes.

Each data source (GitHub, Google Sheets, …) is a subclass of BaseConnector
and provides:
  • an OAuth strategy built from the pipe's client credentials
  • optional extra authorization parameters
  • post-processing of the authenticated user into the pipe config
"""
