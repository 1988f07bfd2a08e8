import pytest

from navorm.base import descriptor_for, model_base
from navorm.builder import ModelBuilder
from navorm.config import NavormSettings
from navorm.errors import ModelSealedError
from navorm.example import build_clinic_model, clinic_base
from navorm.orm_types import Cardinality, Collection, DeleteBehavior, Number, Reference, Text
from navorm.synchronizer import NavigationSynchronizer

RAW = {
    "entities": [
        {
            "name": "Department",
            "attributes": [{"name": "DeptId", "key": True, "nullable": False}, {"name": "Name"}],
            "navigations": [
                {"name": "employees", "target": "Employee", "multiplicity": "collection",
                 "inverse": "department"},
            ],
        },
        {
            "name": "Employee",
            "attributes": [{"name": "Id"}, {"name": "Name"}],
            "navigations": [{"name": "department", "target": "Department", "required": True}],
        },
    ],
}


@pytest.fixture
def clinic():
    return build_clinic_model(NavormSettings())


def test_clinic_relationships(clinic):
    by_id = {r.id: r for r in clinic.relationships}
    assert set(by_id) == {
        "Owner.pets->Pet.owner",
        "Pet.visits->Visit.pet",
        "Visit.procedures->Procedure.visits",
        "Vet.*->Visit.*[vet_id]",
    }

    pets = by_id["Owner.pets->Pet.owner"]
    assert pets.cardinality is Cardinality.ONE_TO_MANY
    assert pets.foreign_key.attribute == "owner_id"
    assert pets.delete_behavior is DeleteBehavior.CASCADE

    vet = by_id["Vet.*->Visit.*[vet_id]"]
    assert vet.cardinality is Cardinality.ONE_TO_ONE
    assert vet.delete_behavior is DeleteBehavior.RESTRICT
    assert vet.foreign_key.type == "int"

    procedures = by_id["Visit.procedures->Procedure.visits"]
    assert procedures.join.name == "VisitProcedure"
    assert procedures.join.left_key == "Visitvisit_id"


def test_declared_classes_navigate(clinic):
    Owner, Pet, Visit = (clinic.entity_class(n) for n in ("Owner", "Pet", "Visit"))
    sync = NavigationSynchronizer(clinic)
    owner = sync.attach(Owner(person_id=1, first_name="Ada"))
    rex = Pet(pet_id=7, name="Rex")
    owner.pets.add(rex)
    checkup = Visit(visit_id=3, reason="checkup")
    sync.attach(checkup)
    checkup.pet = rex

    assert rex.owner is owner
    assert rex.owner_id == 1
    assert rex.visits == [checkup]
    assert checkup.pet_id == 7

    sync.delete(owner)
    assert sync.entities() == []


def test_descriptor_for_declared_class():
    descriptor = descriptor_for(clinic_base()._registry[1])
    assert descriptor.name == "Pet"
    assert descriptor.key.name == "pet_id"
    assert descriptor.key.type == "int"
    owner = descriptor.navigation("owner")
    assert (owner.target, owner.inverse, owner.required) == ("Owner", "pets", True)


def test_meta_entity_name():
    Base = model_base()

    class Dept(Base):
        Id = Text(pk=True)
        staff = Collection("Person")

        class Meta:
            entity_name = "Department"

    class Person(Base):
        Id = Text(pk=True)
        age = Number()
        department = Reference(Dept)

    model = ModelBuilder.from_base(Base, NavormSettings())
    assert model.registry.names == ("Department", "Person")
    assert model.relationships[0].id == "Department.staff->Person.department"
    assert model.entity_class("Department") is Dept


def test_raw_model():
    model = ModelBuilder.from_raw(RAW, NavormSettings())
    rel = model.relationships[0]
    assert rel.id == "Department.employees->Employee.department"
    assert rel.required
    assert rel.delete_behavior is DeleteBehavior.CASCADE

    Employee = model.entity_class("Employee")
    assert Employee.__name__ == "Employee"
    assert isinstance(Employee.department, Reference)


def test_build_runs_once():
    builder = ModelBuilder(NavormSettings()).entity("Department").key("Id").builder
    model = builder.build()
    assert builder.build() is model
    with pytest.raises(ModelSealedError):
        builder.entity("Employee")


def test_model_export(clinic):
    exported = clinic.to_dict()
    assert [e["name"] for e in exported["entities"]] == ["Owner", "Pet", "Vet", "Visit", "Procedure"]
    assert {r["cardinality"] for r in exported["relationships"]} == {
        "one-to-many", "one-to-one", "many-to-many",
    }


def test_declared_classes_are_kept():
    Base = clinic_base()
    model = ModelBuilder.from_base(Base, NavormSettings())
    assert [model.entity_class(cls._entity_name) for cls in Base._registry] == Base._registry
