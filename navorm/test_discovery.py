import pytest

from navorm.builder import ModelBuilder
from navorm.config import NavormSettings
from navorm.errors import AmbiguousRelationshipError, InvalidInverseError
from navorm.orm_types import Cardinality


def builder(**settings):
    return ModelBuilder(NavormSettings(**settings))


def only(model):
    assert len(model.relationships) == 1
    return model.relationships[0]


def test_collection_and_single_pair_into_one_to_many():
    model = (
        builder()
        .entity("Department").key("DeptId").collection("employees", "Employee")
        .entity("Employee").key("Id").reference("department", "Department")
        .build()
    )
    rel = only(model)
    assert rel.cardinality is Cardinality.ONE_TO_MANY
    assert (rel.principal, rel.dependent) == ("Department", "Employee")
    assert (rel.principal_slot, rel.dependent_slot) == ("employees", "department")
    assert rel.id == "Department.employees->Employee.department"


def test_collection_only_is_one_to_many():
    model = (
        builder()
        .entity("Department").key("DeptId").collection("employees", "Employee")
        .entity("Employee").key("Id")
        .build()
    )
    rel = only(model)
    assert rel.cardinality is Cardinality.ONE_TO_MANY
    assert rel.id == "Department.employees->Employee.*"
    assert rel.dependent_slot is None


def test_single_only_defaults_to_one_to_one():
    model = (
        builder()
        .entity("Department").key("DeptId")
        .entity("Employee").key("Id").reference("department", "Department")
        .build()
    )
    rel = only(model)
    assert rel.cardinality is Cardinality.ONE_TO_ONE
    assert (rel.principal, rel.dependent) == ("Department", "Employee")
    assert rel.id == "Department.*->Employee.department"


def test_single_only_cardinality_is_configurable():
    model = (
        builder(unidirectional_reference="one-to-many")
        .entity("Department").key("DeptId")
        .entity("Employee").key("Id").reference("department", "Department")
        .build()
    )
    assert only(model).cardinality is Cardinality.ONE_TO_MANY


def test_explicit_inverse_singles_are_one_to_one_with_required_side_dependent():
    model = (
        builder()
        .entity("Person").key("Id").reference("passport", "Passport", inverse="holder")
        .entity("Passport").key("Id").reference("holder", "Person", inverse="passport", required=True)
        .build()
    )
    rel = only(model)
    assert rel.cardinality is Cardinality.ONE_TO_ONE
    assert (rel.principal, rel.dependent) == ("Person", "Passport")
    assert rel.required


def test_one_to_one_without_required_side_uses_registration_order():
    model = (
        builder()
        .entity("Person").key("Id").reference("passport", "Passport", inverse="holder")
        .entity("Passport").key("Id").reference("holder", "Person", inverse="passport")
        .build()
    )
    rel = only(model)
    assert rel.dependent == "Person"
    assert rel.id == "Passport.holder->Person.passport"


def test_two_collections_are_many_to_many():
    model = (
        builder()
        .entity("Student").key("Id").collection("courses", "Course")
        .entity("Course").key("Id").collection("students", "Student")
        .build()
    )
    rel = only(model)
    assert rel.cardinality is Cardinality.MANY_TO_MANY
    assert rel.principal == "Student"
    assert rel.foreign_key is None
    assert rel.join.name == "StudentCourse"


def test_foreign_key_without_navigation():
    model = (
        builder()
        .entity("Vet").key("Id")
        .entity("Visit").key("Id").foreign_key("Vet", "VetId")
        .build()
    )
    rel = only(model)
    assert rel.cardinality is Cardinality.ONE_TO_ONE
    assert rel.id == "Vet.*->Visit.*[VetId]"
    assert rel.foreign_key.attribute == "VetId"


def test_foreign_key_without_navigation_cardinality_is_configurable():
    model = (
        builder(no_navigation_cardinality="one-to-many")
        .entity("Vet").key("Id")
        .entity("Visit").key("Id").foreign_key("Vet", "VetId")
        .build()
    )
    assert only(model).cardinality is Cardinality.ONE_TO_MANY


def test_many_to_many_default_is_rejected():
    with pytest.raises(ValueError):
        NavormSettings(unidirectional_reference="many-to-many")


def test_foreign_key_override_names_the_navigation_relationship():
    model = (
        builder()
        .entity("Department").key("DeptId").collection("employees", "Employee")
        .entity("Employee").key("Id").reference("department", "Department")
        .foreign_key("Department", "DeptRef", required=True)
        .build()
    )
    rel = only(model)
    assert rel.foreign_key.attribute == "DeptRef"
    assert rel.required


def test_two_unannotated_singles_are_ambiguous():
    with pytest.raises(AmbiguousRelationshipError) as exc:
        (
            builder()
            .entity("Department").key("DeptId")
            .entity("Employee").key("Id")
            .reference("department", "Department")
            .reference("previous_department", "Department")
            .build()
        )
    assert set(exc.value.slots) == {"Employee.department", "Employee.previous_department"}


def test_explicit_inverse_leaves_an_unambiguous_remainder():
    model = (
        builder()
        .entity("Department").key("DeptId").collection("employees", "Employee", inverse="department")
        .entity("Employee").key("Id")
        .reference("department", "Department")
        .reference("previous_department", "Department", foreign_key="PreviousDeptId")
        .build()
    )
    by_id = {r.id: r for r in model.relationships}
    assert by_id["Department.employees->Employee.department"].cardinality is Cardinality.ONE_TO_MANY
    previous = by_id["Department.*->Employee.previous_department"]
    assert previous.cardinality is Cardinality.ONE_TO_ONE
    assert previous.foreign_key.attribute == "PreviousDeptId"


def test_inverse_naming_a_missing_slot():
    with pytest.raises(InvalidInverseError) as exc:
        (
            builder()
            .entity("Department").key("DeptId").collection("employees", "Employee", inverse="dept")
            .entity("Employee").key("Id").reference("department", "Department")
            .build()
        )
    assert exc.value.slot == "Department.employees"


def test_inverses_that_disagree():
    with pytest.raises(InvalidInverseError):
        (
            builder()
            .entity("Department").key("DeptId")
            .collection("employees", "Employee", inverse="department")
            .collection("alumni", "Employee", inverse="department")
            .entity("Employee").key("Id").reference("department", "Department", inverse="alumni")
            .build()
        )


def test_self_reference_pairs_single_with_collection():
    model = (
        builder()
        .entity("Node").key("Id")
        .reference("parent", "Node")
        .collection("children", "Node")
        .build()
    )
    rel = only(model)
    assert rel.cardinality is Cardinality.ONE_TO_MANY
    assert rel.id == "Node.children->Node.parent"
    assert rel.foreign_key.attribute == "NodeId"


def test_relationships_follow_registration_order():
    model = (
        builder()
        .entity("A").key("Id").collection("bs", "B").collection("cs", "C")
        .entity("B").key("Id")
        .entity("C").key("Id").collection("bs", "B")
        .build()
    )
    assert [r.id for r in model.relationships] == [
        "A.bs->B.*", "A.cs->C.*", "C.bs->B.*",
    ]
