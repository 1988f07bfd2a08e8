import pytest

from navorm.builder import ModelBuilder
from navorm.config import NavormSettings
from navorm.synchronizer import NavigationSynchronizer
from navorm.tracking import PendingChanges


def department_model(required=False, on_delete=None):
    return (
        ModelBuilder(NavormSettings())
        .entity("Department").key("DeptId").attribute("Name")
        .collection("employees", "Employee", inverse="department")
        .entity("Employee").key("Id").attribute("Name")
        .reference("department", "Department", inverse="employees",
                   required=required, on_delete=on_delete)
        .build()
    )


def tree_model(on_delete="cascade"):
    return (
        ModelBuilder(NavormSettings())
        .entity("Node").key("Id")
        .reference("parent", "Node", inverse="children", on_delete=on_delete)
        .collection("children", "Node", inverse="parent")
        .build()
    )


@pytest.fixture
def tracker():
    return PendingChanges()


@pytest.fixture
def model():
    return department_model()


@pytest.fixture
def sync(model, tracker):
    return NavigationSynchronizer(model, tracker)


@pytest.fixture
def Department(model):
    return model.entity_class("Department")


@pytest.fixture
def Employee(model):
    return model.entity_class("Employee")
