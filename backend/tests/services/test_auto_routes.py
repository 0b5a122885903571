"""Auto Route Assembler — tests for schema matching, method inference and registration.

Tests cover:
    - Method inferred from controller names; configurable default
    - Conventional schema keys attached by validation kind
    - Validation middleware only when a schema is attached
    - Registered handler merges input, passes RequestContext, wraps result in an envelope
    - Controller exception → 500 CONTROLLER_ERROR
    - One failing registration does not stop the others; count reported
    - A .pyc beside its .py on disk is discovered and reported as a duplicate route
"""

import py_compile

import pytest
from pydantic import BaseModel

from routeforge.core.domain_types import HttpMethod, ValidationKind
from routeforge.services.auto_routes import AutoRouteDiscovery


class CreateUserBody(BaseModel):
    name: str


class ListUsersQuery(BaseModel):
    page: int = 1


seen_contexts = []


async def create_user(input_data, context):
    seen_contexts.append(context)
    return {"created": input_data["name"]}


def list_users(input_data, context):
    return [{"page": input_data.get("page")}]


def ping(input_data, context):
    return "pong"


def delete_user(input_data, context):
    raise LookupError("user 9 not found")


@pytest.fixture
def loader(fake_loader_cls, make_module):
    return fake_loader_cls({
        "/api/users/controllers/create-user-controller.py": make_module(handle=create_user),
        "/api/users/controllers/list-users-controller.py": make_module(handle=list_users),
        "/api/users/controllers/delete-user-controller.py": make_module(handle=delete_user),
        "/api/ops/controllers/ping-controller.py": make_module(handle=ping),
        "/api/users/schemas/create-user-schema.py": make_module(schema=CreateUserBody),
        "/api/users/schemas/list-users-query-schema.py": make_module(schema=ListUsersQuery),
    })


@pytest.mark.asyncio
async def test_discover_routes_builds_descriptors(loader, log):
    auto = AutoRouteDiscovery("/api", loader=loader, log=log)

    routes = await auto.discover_routes()

    assert {path: r.method for path, r in routes.items()} == {
        "/users/create-user": HttpMethod.POST,
        "/users/list-users": HttpMethod.GET,
        "/users/delete-user": HttpMethod.DELETE,
        "/ops/ping": HttpMethod.GET,
    }
    assert auto.get_route("/users/create-user").validation_schemas == {
        ValidationKind.BODY: CreateUserBody,
    }
    assert auto.get_route("/users/list-users").validation_schemas == {
        ValidationKind.QUERY: ListUsersQuery,
    }
    assert auto.get_route("/ops/ping").validation_schemas == {}
    assert len(auto.get_all_routes()) == 4


@pytest.mark.asyncio
async def test_default_method_for_unmatched_names(loader, log):
    auto = AutoRouteDiscovery("/api", default_method="post", loader=loader, log=log)
    await auto.discover_routes()
    assert auto.get_route("/ops/ping").method is HttpMethod.POST


@pytest.mark.asyncio
async def test_register_routes_wires_validation(loader, log, server):
    count = await AutoRouteDiscovery("/api", loader=loader, log=log).register_routes(server)

    assert count == 4
    assert len(server.find(HttpMethod.POST, "/users/create-user").middlewares) == 1
    assert server.find(HttpMethod.GET, "/ops/ping").middlewares == ()
    assert log.info.call_args_list[-1].args[1] == "Registered 4/4 routes"


@pytest.mark.asyncio
async def test_registered_handler_round_trip(loader, log, server, make_request, run_route):
    db = object()
    await AutoRouteDiscovery("/api", loader=loader, log=log, db=db).register_routes(server)
    route = server.find(HttpMethod.POST, "/users/create-user")

    ok = await run_route(route, make_request("POST", route.path, body={"name": "ana"}))
    invalid = await run_route(route, make_request("POST", route.path, body={}))

    assert ok.status_code == 200
    assert ok.payload["data"] == {"created": "ana"}
    assert seen_contexts[-1].db is db
    assert seen_contexts[-1].log is log
    assert invalid.status_code == 400


@pytest.mark.asyncio
async def test_controller_exception_becomes_500(loader, log, server, make_request, run_route):
    await AutoRouteDiscovery("/api", loader=loader, log=log).register_routes(server)
    route = server.find(HttpMethod.DELETE, "/users/delete-user")

    reply = await run_route(route, make_request("DELETE", route.path, query={"id": "9"}))

    assert reply.status_code == 500
    assert reply.payload["error"] == {
        "code": "CONTROLLER_ERROR", "message": "user 9 not found",
    }


@pytest.mark.asyncio
async def test_failed_registration_is_counted(loader, log):
    class FlakyServer:
        def __init__(self):
            self.paths = []

        def register(self, route):
            if route.path == "/ops/ping":
                raise RuntimeError("route table locked")
            self.paths.append(route.path)

    flaky = FlakyServer()
    count = await AutoRouteDiscovery("/api", loader=loader, log=log).register_routes(flaky)

    assert count == 3
    assert "/users/list-users" in flaky.paths
    assert log.info.call_args_list[-1].args[1] == "Registered 3/4 routes"


@pytest.mark.asyncio
async def test_compiled_sibling_reported_as_duplicate(tmp_path, log):
    controllers = tmp_path / "ops" / "controllers"
    controllers.mkdir(parents=True)
    source = controllers / "ping-controller.py"
    source.write_text("def handle(input, context):\n    return 'pong'\n")
    py_compile.compile(str(source), cfile=str(controllers / "ping-controller.pyc"), doraise=True)

    discovery = AutoRouteDiscovery(str(tmp_path), log=log)
    routes = await discovery.discover_routes()

    assert list(routes) == ["/ops/ping"]
    assert discovery.controller_discovery.get_duplicate_routes() == ["/ops/ping"]
    assert routes["/ops/ping"].source_file == str(source)
