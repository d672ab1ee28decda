"""HTTP routers for the poll protocol and administration."""
