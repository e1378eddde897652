from rental_client.session import Session

__all__ = ["Session"]
