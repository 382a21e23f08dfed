"""Single version source for the server, clients and web remote."""

VERSION: str = "1.0.0"
