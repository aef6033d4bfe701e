"""Custom DRF permissions for the EventHive platform."""

from rest_framework import permissions
import logging

from apps.users.models import Role, has_role

logger = logging.getLogger(__name__)


class HasMinimumRole(permissions.BasePermission):
    """Grant access to authenticated users whose role is at least ``minimum_role``."""
    
    minimum_role = Role.ATTENDEE
    
    def has_permission(self, request, view):
        if not request.user.is_authenticated:
            return False
        
        allowed = has_role(request.user, self.minimum_role)
        if not allowed:
            logger.warning(
                f"🔒 [PERMISSIONS] User {request.user.pk} with role {request.user.role} "
                f"denied {view.__class__.__name__} (requires {self.minimum_role.label})"
            )
        return allowed


class IsVolunteer(HasMinimumRole):
    """Volunteers, organizers and admins (ticket scanning staff)."""
    
    minimum_role = Role.VOLUNTEER


class IsOrganizer(HasMinimumRole):
    """Permission to check if user is an organizer."""
    
    minimum_role = Role.ORGANIZER
    
    def has_object_permission(self, request, view, obj):
        """Organizers only touch objects of their own events; admins touch everything."""
        if has_role(request.user, Role.ADMIN):
            return True
        
        if hasattr(obj, 'organizer_id'):
            return obj.organizer_id == request.user.pk
        
        event = getattr(obj, 'event', None)
        if event is not None:
            return event.organizer_id == request.user.pk
        
        created_by_id = getattr(obj, 'created_by_id', None)
        return created_by_id == request.user.pk


class IsAdmin(HasMinimumRole):
    """Permission to check if user is a platform administrator."""
    
    minimum_role = Role.ADMIN
