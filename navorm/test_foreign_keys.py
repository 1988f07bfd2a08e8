import pytest

from navorm.builder import ModelBuilder
from navorm.config import NavormSettings
from navorm.errors import ForeignKeyConflictError
from navorm.orm_types import DeleteBehavior


def employees(**reference_options):
    return (
        ModelBuilder(NavormSettings())
        .entity("Department").key("DeptId").collection("employees", "Employee", inverse="department")
        .entity("Employee").key("Id")
        .reference("department", "Department", **reference_options)
    )


def test_default_name_is_principal_type_and_key():
    model = employees().build()
    fk = model.relationships[0].foreign_key
    assert fk.attribute == "DepartmentDeptId"
    assert fk.dependent == "Employee"
    assert fk.principal_key == "DeptId"
    assert fk.nullable
    assert not fk.declared


def test_explicit_name_wins():
    fk = employees(foreign_key="dept").build().relationships[0].foreign_key
    assert fk.attribute == "dept"


def test_declared_attribute_is_used():
    model = employees().attribute("DepartmentDeptId", nullable=False).build()
    rel = model.relationships[0]
    assert rel.foreign_key.declared
    assert not rel.foreign_key.nullable
    assert rel.required
    assert rel.delete_behavior is DeleteBehavior.CASCADE


def test_declared_attribute_of_another_type():
    with pytest.raises(ForeignKeyConflictError) as exc:
        employees().attribute("DepartmentDeptId", type="int").build()
    assert exc.value.attribute == "DepartmentDeptId"


def test_required_navigation_makes_foreign_key_non_nullable():
    fk = employees(required=True).build().relationships[0].foreign_key
    assert not fk.nullable


def test_two_relationships_claiming_one_attribute():
    with pytest.raises(ForeignKeyConflictError) as exc:
        (
            employees()
            .reference("previous_department", "Department")
            .build()
        )
    assert exc.value.dependent == "Employee"
    assert exc.value.attribute == "DepartmentDeptId"
    assert len(exc.value.relationships) == 2


def test_foreign_key_named_like_a_navigation():
    with pytest.raises(ForeignKeyConflictError):
        employees(foreign_key="department").build()


def test_different_names_for_one_relationship():
    with pytest.raises(ForeignKeyConflictError):
        (
            ModelBuilder(NavormSettings())
            .entity("Department").key("DeptId")
            .collection("employees", "Employee", inverse="department", foreign_key="a")
            .entity("Employee").key("Id")
            .reference("department", "Department", foreign_key="b")
            .build()
        )


def test_foreign_keys_per_dependent():
    model = employees().build()
    assert [fk.attribute for fk in model.foreign_keys("Employee")] == ["DepartmentDeptId"]
    assert model.foreign_keys("Department") == ()


def test_join_association_keys():
    model = (
        ModelBuilder(NavormSettings())
        .entity("Student").key("StudentNo").collection("courses", "Course")
        .entity("Course").key("Code").collection("students", "Student")
        .build()
    )
    join = model.join_associations()[0]
    assert (join.name, join.left, join.right) == ("StudentCourse", "Student", "Course")
    assert (join.left_key, join.right_key) == ("StudentStudentNo", "CourseCode")


def test_self_referencing_join_keys_are_prefixed():
    model = (
        ModelBuilder(NavormSettings())
        .entity("Person").key("Id")
        .collection("friends", "Person", inverse="friend_of")
        .collection("friend_of", "Person", inverse="friends")
        .build()
    )
    join = model.relationships[0].join
    assert join.name == "PersonPerson"
    assert (join.left_key, join.right_key) == ("friendsPersonId", "friend_ofPersonId")
