"""HTTP routers for the Crazy Eights server."""
