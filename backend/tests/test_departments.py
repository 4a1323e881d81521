# tests/test_departments.py
"""Tests for the department hierarchy."""

import pytest
from django.core.exceptions import PermissionDenied

from accounts.commands import active_members_with_role, create_department, move_department
from accounts.models import Department, Membership
from common import errors


@pytest.mark.django_db
class TestDepartmentHierarchy:

    def test_create_under_parent(self, head_actor):
        parent = create_department(head_actor, "Education").data

        child = create_department(head_actor, "Sunday school", parent_id=parent.pk)

        assert child.success
        assert child.data.parent_id == parent.pk

    def test_duplicate_name_conflicts(self, head_actor):
        create_department(head_actor, "Education")

        result = create_department(head_actor, "Education")

        assert isinstance(result.error, errors.ConflictError)

    def test_move_into_own_descendant_is_refused(self, head_actor):
        top = create_department(head_actor, "Education").data
        middle = create_department(head_actor, "Youth", parent_id=top.pk).data
        bottom = create_department(head_actor, "High school", parent_id=middle.pk).data

        result = move_department(head_actor, top.pk, new_parent_id=bottom.pk)

        assert isinstance(result.error, errors.BusinessRuleViolation)
        top.refresh_from_db()
        assert top.parent_id is None

    def test_move_under_itself_is_refused(self, head_actor):
        top = create_department(head_actor, "Education").data

        result = move_department(head_actor, top.pk, new_parent_id=top.pk)

        assert isinstance(result.error, errors.BusinessRuleViolation)

    def test_move_to_sibling_branch(self, head_actor):
        left = create_department(head_actor, "Worship").data
        right = create_department(head_actor, "Mission").data
        child = create_department(head_actor, "Choir", parent_id=left.pk).data

        result = move_department(head_actor, child.pk, new_parent_id=right.pk)

        assert result.success
        assert Department.objects.get(pk=child.pk).parent_id == right.pk

    def test_move_to_root(self, head_actor):
        top = create_department(head_actor, "Education").data
        child = create_department(head_actor, "Youth", parent_id=top.pk).data

        assert move_department(head_actor, child.pk).data.parent_id is None

    def test_general_user_cannot_create(self, member_actor):
        with pytest.raises(PermissionDenied):
            create_department(member_actor, "Education")


@pytest.mark.django_db
class TestRoleHolders:

    def test_only_live_members_with_role(self, church, accountant_user, make_member):
        retired = make_member("old@grace.test", "DEPARTMENT_ACCOUNTANT")
        Membership.objects.get(user=retired).retire()
        make_member("head2@grace.test", "DEPARTMENT_HEAD")

        users = [m.user_id for m in active_members_with_role(church, "DEPARTMENT_ACCOUNTANT")]

        assert users == [accountant_user.pk]
