"""Cross-cutting pieces shared by the auth, linking and ordering packages."""
