from django.contrib.auth.models import AnonymousUser
from django.test import TestCase

from apps.users.models import Role, has_role
from apps.events.tests.helpers import make_user


class RoleTestCase(TestCase):

    def test_roles_are_hierarchical(self):
        volunteer = make_user('door@eventhive.test', role=Role.VOLUNTEER)

        self.assertTrue(has_role(volunteer, Role.ATTENDEE))
        self.assertTrue(volunteer.has_role(Role.VOLUNTEER))
        self.assertFalse(volunteer.has_role(Role.ORGANIZER))
        self.assertTrue(volunteer.is_volunteer)
        self.assertFalse(volunteer.is_organizer)

    def test_superuser_holds_every_role(self):
        root = make_user('root@eventhive.test', is_superuser=True)
        self.assertTrue(root.has_role(Role.ADMIN))

    def test_anonymous_has_no_role(self):
        self.assertFalse(has_role(AnonymousUser(), Role.ATTENDEE))
        self.assertFalse(has_role(None, Role.ATTENDEE))
