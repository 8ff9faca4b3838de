"""GameGuard: closes blocked games and launchers during blocked time windows."""
