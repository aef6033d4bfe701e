"""Utility functions for the EventHive platform."""


def generate_username(email):
    """Generate a unique username from email."""
    from django.contrib.auth import get_user_model

    User = get_user_model()
    base_username = email.split('@')[0][:140] or 'user'
    username = base_username
    counter = 1

    while User.objects.filter(username=username).exists():
        username = f"{base_username}{counter}"
        counter += 1

    return username
