"""HTTP routers for the FieldSign server."""
