from users_api.models.user import UserEntity

__all__ = ["UserEntity"]
