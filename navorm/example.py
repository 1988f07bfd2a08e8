from navorm.base import model_base
from navorm.builder import ModelBuilder
from navorm.config import configure_logging
from navorm.orm_types import Collection, ForeignKey, Number, Reference, Text


def clinic_base():
    """Veterinary clinic model: owners, pets, visits and procedures."""
    Base = model_base("ClinicBase")

    class Owner(Base):
        person_id = Number(pk=True)
        first_name = Text()
        last_name = Text()
        pets = Collection("Pet", inverse="owner")

    class Pet(Base):
        pet_id = Number(pk=True)
        name = Text()
        species = Text()
        owner = Reference(Owner, inverse="pets", required=True, foreign_key="owner_id")
        visits = Collection("Visit")

    class Vet(Base):
        person_id = Number(pk=True)
        license = Text()

    class Visit(Base):
        visit_id = Number(pk=True)
        reason = Text()
        pet = Reference(Pet, inverse="visits", required=True, foreign_key="pet_id")
        procedures = Collection("Procedure", inverse="visits")

        class Meta:
            foreign_keys = [ForeignKey(Vet, "vet_id", on_delete="restrict")]

    class Procedure(Base):
        procedure_id = Number(pk=True)
        name = Text()
        price = Number()
        visits = Collection(Visit, inverse="procedures")

    return Base


def build_clinic_model(settings=None):
    return ModelBuilder.from_base(clinic_base(), settings)


if __name__ == "__main__":
    configure_logging()
    model = build_clinic_model()
    for rel in model.relationships:
        fk = rel.foreign_key.attribute if rel.foreign_key else rel.join.name
        print(f"{rel.id}: {rel.cardinality.value} [{fk}] on delete {rel.delete_behavior.value}")
