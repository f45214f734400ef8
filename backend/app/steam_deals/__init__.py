"""Random Steam deal picker backed by CheapShark and the Steam Web API."""
