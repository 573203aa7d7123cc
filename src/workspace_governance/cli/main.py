"""
Workspace Governance CLI

Command-line interface over the SQLite reference store.
Provides commands for building a workspace hierarchy, adding members,
inspecting who governs what, and delegating responsible roles.

Usage:
    wsgov init --db workspaces.db
    wsgov workspace create --scope event-2026 --name "Main Event" --type ROOT
    wsgov workspace create --scope event-2026 --name Operations --type DEPARTMENT \\
        --parent <root_id> --department operations
    wsgov member add --workspace <id> --user alice --role OPERATIONS_MANAGER
    wsgov authority show --scope event-2026
    wsgov delegate run --scope event-2026 --workspace <id> --to <membership_id>
    wsgov audit --scope event-2026
"""

import asyncio
import json
import os
from pathlib import Path
from typing import NoReturn, Optional

import typer
from typing_extensions import Annotated

from workspace_governance.governance import WorkspaceGovernance
from workspace_governance.hierarchy.authority import role_label
from workspace_governance.hierarchy.commands import CreateSubWorkspace, DelegateRole
from workspace_governance.hierarchy.models import (
    AuthorityAssignment,
    TreeNode,
    WorkspaceRole,
    WorkspaceType,
)
from workspace_governance.hierarchy.paths import breadcrumb_labels
from workspace_governance.hierarchy.policy import HierarchyPolicy, load_policy
from workspace_governance.hierarchy.store import SQLiteNodeStore
from workspace_governance.hierarchy.tree import iter_tree
from workspace_governance.kernel.errors import (
    DelegationFailed,
    GovernanceError,
    PartialDelegationFailure,
)
from workspace_governance.kernel.logging import configure_logging_from_env

# Logs go to stderr (keeps stdout clean for --json)
configure_logging_from_env()

app = typer.Typer(
    name="wsgov",
    help="Workspace Governance - Hierarchical workspaces and role authority",
    add_completion=False,
)

# Sub-apps
workspace_app = typer.Typer(help="Workspace hierarchy commands")
member_app = typer.Typer(help="Team membership commands")
authority_app = typer.Typer(help="Responsible role commands")
delegate_app = typer.Typer(help="Role delegation commands")

app.add_typer(workspace_app, name="workspace")
app.add_typer(member_app, name="member")
app.add_typer(authority_app, name="authority")
app.add_typer(delegate_app, name="delegate")

DEFAULT_DB = Path(".wsgov.db")

# Exit code when a delegation was applied only halfway
EXIT_PARTIAL = 2

DbOption = Annotated[
    Optional[Path],
    typer.Option("--db", help="Database path (default: $WSGOV_DB or .wsgov.db)"),
]
ScopeOption = Annotated[str, typer.Option("--scope", help="Scope id (e.g. one event)")]
PolicyOption = Annotated[
    Optional[Path],
    typer.Option("--policy", help="Hierarchy policy JSON file"),
]
JsonOption = Annotated[bool, typer.Option("--json", help="Output as JSON")]


def resolve_db(db_path: Optional[Path]) -> Path:
    """Database path from the option, then $WSGOV_DB, then the default"""
    if db_path is not None:
        return db_path
    env_db = os.getenv("WSGOV_DB")
    return Path(env_db) if env_db else DEFAULT_DB


def get_store(db_path: Optional[Path] = None) -> SQLiteNodeStore:
    """Open an existing database"""
    db = resolve_db(db_path)
    if not db.exists():
        typer.echo(f"Error: Database not found: {db}", err=True)
        typer.echo(f"Run 'wsgov init --db {db}' to initialize", err=True)
        raise typer.Exit(1)
    return SQLiteNodeStore(db)


def get_governance(
    db_path: Optional[Path] = None, policy_path: Optional[Path] = None
) -> WorkspaceGovernance:
    """Façade over an existing database, with an optional policy file"""
    store = get_store(db_path)
    policy: HierarchyPolicy | None = None
    if policy_path is not None:
        try:
            policy = load_policy(policy_path)
        except GovernanceError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1) from e
    return WorkspaceGovernance(store, policy=policy)


def fail(error: Exception) -> NoReturn:
    """Report a domain error and exit non-zero"""
    typer.echo(f"Error: {error}", err=True)
    raise typer.Exit(1) from error


def to_json(data: object) -> str:
    return json.dumps(data, indent=2, default=str)


# Initialization command


@app.command()
def init(db_path: DbOption = None) -> None:
    """Initialize a new workspace database"""
    db = resolve_db(db_path)
    if db.exists():
        typer.echo(f"Error: Database already exists: {db}", err=True)
        raise typer.Exit(1)

    SQLiteNodeStore(db)
    typer.echo(f"✓ Initialized workspace database: {db}")


# Workspace commands


@workspace_app.command("create")
def workspace_create(
    scope: ScopeOption,
    name: Annotated[str, typer.Option("--name", help="Workspace name")],
    workspace_type: Annotated[
        WorkspaceType,
        typer.Option("--type", help="ROOT, DEPARTMENT, COMMITTEE or TEAM"),
    ],
    parent: Annotated[
        Optional[str],
        typer.Option("--parent", help="Parent workspace ID"),
    ] = None,
    department: Annotated[
        Optional[str],
        typer.Option("--department", help="Department catalog id (e.g. operations)"),
    ] = None,
    db: DbOption = None,
    policy: PolicyOption = None,
) -> None:
    """Create a workspace, refusing to nest deeper than the policy allows"""
    gov = get_governance(db, policy)
    command = CreateSubWorkspace(
        scope_id=scope,
        name=name,
        workspace_type=workspace_type,
        parent_id=parent,
        department_id=department,
    )

    try:
        allowed = asyncio.run(gov.check_sub_workspace(command))
    except GovernanceError as e:
        fail(e)
    if not allowed:
        typer.echo(
            f"Error: Maximum nesting depth ({gov.policy.max_workspace_depth}) "
            f"reached under {parent}",
            err=True,
        )
        raise typer.Exit(1)

    node = asyncio.run(
        gov.store.create_workspace(
            command.scope_id,
            command.name,
            command.workspace_type,
            parent_id=command.parent_id,
            department_id=command.department_id,
        )
    )
    typer.echo(f"✓ Created workspace: {node.id}")
    typer.echo(f"  Name: {node.name}")
    typer.echo(f"  Type: {workspace_type.value}")
    if parent:
        typer.echo(f"  Parent: {parent}")


@workspace_app.command("list")
def workspace_list(
    scope: ScopeOption,
    db: DbOption = None,
    json_output: JsonOption = False,
) -> None:
    """List the workspaces of a scope"""
    store = get_store(db)
    nodes = asyncio.run(store.list_nodes(scope))

    if json_output:
        typer.echo(to_json([n.model_dump(mode="json") for n in nodes]))
        return

    if not nodes:
        typer.echo(f"No workspaces in scope {scope}")
        return

    typer.echo(f"Workspaces in {scope} ({len(nodes)}):")
    for node in nodes:
        kind = node.type.value if node.type else "-"
        typer.echo(f"  {node.id}: {node.name} [{kind}]")


@workspace_app.command("tree")
def workspace_tree(
    scope: ScopeOption,
    db: DbOption = None,
    policy: PolicyOption = None,
) -> None:
    """Show the workspace tree with responsible roles and holders"""
    gov = get_governance(db, policy)
    roots = asyncio.run(gov.load_tree(scope))
    assignments = asyncio.run(gov.authority_overview(scope))

    if not roots:
        typer.echo(f"No workspaces in scope {scope}")
        return

    for node in iter_tree(roots):
        typer.echo(_tree_line(node, assignments.get(node.id)))


def _tree_line(node: TreeNode, assignment: AuthorityAssignment | None) -> str:
    indent = "  " * (node.depth - 1)
    line = f"{indent}- {node.name} ({node.id})"
    if assignment is None or assignment.responsible_role is None:
        return line + " [no responsible role]"
    holder = assignment.holder
    who = (holder.user_name or holder.user_id) if holder else "vacant"
    return line + f" [{role_label(assignment.responsible_role)}: {who}]"


@workspace_app.command("path")
def workspace_path(
    scope: ScopeOption,
    workspace: Annotated[str, typer.Option("--workspace", help="Workspace ID")],
    db: DbOption = None,
    json_output: JsonOption = False,
) -> None:
    """Show the breadcrumb path of a workspace"""
    gov = get_governance(db)
    try:
        path = asyncio.run(gov.ancestor_path(scope, workspace))
    except GovernanceError as e:
        fail(e)

    if json_output:
        typer.echo(to_json(path.model_dump(mode="json")))
        return

    typer.echo(breadcrumb_labels(path))
    if path.cycle_detected:
        typer.echo("Warning: parent cycle detected, path is incomplete", err=True)


# Member commands


@member_app.command("add")
def member_add(
    workspace: Annotated[str, typer.Option("--workspace", help="Workspace ID")],
    user: Annotated[str, typer.Option("--user", help="User ID")],
    role: Annotated[WorkspaceRole, typer.Option("--role", help="Workspace role")],
    name: Annotated[
        Optional[str],
        typer.Option("--name", help="Display name"),
    ] = None,
    email: Annotated[
        Optional[str],
        typer.Option("--email", help="Contact email"),
    ] = None,
    db: DbOption = None,
) -> None:
    """Add a member to a workspace"""
    store = get_store(db)
    try:
        membership = asyncio.run(
            store.add_member(workspace, user, role, user_name=name, user_email=email)
        )
    except GovernanceError as e:
        fail(e)

    typer.echo(f"✓ Added membership: {membership.id}")
    typer.echo(f"  User: {membership.user_id}")
    typer.echo(f"  Role: {role_label(membership.role)}")


@member_app.command("list")
def member_list(
    workspace: Annotated[str, typer.Option("--workspace", help="Workspace ID")],
    db: DbOption = None,
    json_output: JsonOption = False,
) -> None:
    """List memberships of a workspace (any status)"""
    store = get_store(db)
    memberships = asyncio.run(store.list_memberships([workspace]))

    if json_output:
        typer.echo(to_json([m.model_dump(mode="json") for m in memberships]))
        return

    if not memberships:
        typer.echo(f"No members in workspace {workspace}")
        return

    typer.echo(f"Members of {workspace} ({len(memberships)}):")
    for m in memberships:
        typer.echo(
            f"  {m.id}: {m.user_name or m.user_id} - {role_label(m.role)} ({m.status.value})"
        )


# Authority commands


@authority_app.command("show")
def authority_show(
    scope: ScopeOption,
    db: DbOption = None,
    policy: PolicyOption = None,
    json_output: JsonOption = False,
) -> None:
    """Show the responsible role and holder of every workspace"""
    gov = get_governance(db, policy)
    assignments = asyncio.run(gov.authority_overview(scope))

    if json_output:
        typer.echo(to_json([a.model_dump(mode="json") for a in assignments.values()]))
        return

    if not assignments:
        typer.echo(f"No workspaces in scope {scope}")
        return

    for a in assignments.values():
        if a.responsible_role is None:
            typer.echo(f"  {a.workspace_name}: no responsible role")
            continue
        holder = (a.holder.user_name or a.holder.user_id) if a.holder else "vacant"
        typer.echo(f"  {a.workspace_name}: {role_label(a.responsible_role)} - {holder}")


# Delegation commands


@delegate_app.command("candidates")
def delegate_candidates(
    scope: ScopeOption,
    workspace: Annotated[str, typer.Option("--workspace", help="Workspace ID")],
    db: DbOption = None,
    policy: PolicyOption = None,
) -> None:
    """List members who could take over a workspace's responsible role"""
    gov = get_governance(db, policy)
    try:
        candidates = asyncio.run(gov.delegation_candidates(scope, workspace))
    except GovernanceError as e:
        fail(e)

    if not candidates:
        typer.echo("No eligible members")
        return
    for m in candidates:
        typer.echo(f"  {m.id}: {m.user_name or m.user_id} ({role_label(m.role)})")


@delegate_app.command("run")
def delegate_run(
    scope: ScopeOption,
    workspace: Annotated[str, typer.Option("--workspace", help="Workspace ID")],
    to: Annotated[str, typer.Option("--to", help="Membership ID of the new holder")],
    acting_user: Annotated[
        Optional[str],
        typer.Option("--as", help="User ID performing the delegation"),
    ] = None,
    retry_demotion: Annotated[
        bool,
        typer.Option(help="Retry a failed demotion once before giving up"),
    ] = True,
    db: DbOption = None,
    policy: PolicyOption = None,
) -> None:
    """Hand a workspace's responsible role to another member"""
    gov = get_governance(db, policy)
    command = DelegateRole(
        workspace_id=workspace, new_holder_membership_id=to, acting_user_id=acting_user
    )

    try:
        outcome = asyncio.run(gov.delegate_role(scope, command))
    except PartialDelegationFailure as e:
        _handle_partial(gov, e, retry_demotion)
        return
    except DelegationFailed as e:
        typer.echo(f"Error: {e}", err=True)
        typer.echo("No changes were made.", err=True)
        raise typer.Exit(1) from e
    except GovernanceError as e:
        fail(e)

    if outcome.self_delegation:
        typer.echo("Warning: you delegated your own role", err=True)
    typer.echo(f"✓ Delegated {role_label(outcome.responsible_role)}")
    typer.echo(f"  New holder: {outcome.promoted.id}")
    if outcome.demoted is not None:
        typer.echo(
            f"  Previous holder {outcome.demoted.id} is now {role_label(outcome.demoted.role)}"
        )


def _handle_partial(
    gov: WorkspaceGovernance, failure: PartialDelegationFailure, retry: bool
) -> None:
    typer.echo(f"Warning: {failure}", err=True)
    if retry:
        try:
            asyncio.run(gov.retry_demotion(failure))
        except PartialDelegationFailure as e:
            failure = e
        else:
            typer.echo("✓ Demotion completed on retry")
            return

    typer.echo(
        f"Error: workspace {failure.workspace_id} has two holders of "
        f"{role_label(failure.responsible_role)}; set membership "
        f"{failure.stale_membership_id} to {failure.pending_role.value} manually",
        err=True,
    )
    raise typer.Exit(EXIT_PARTIAL)


# Audit


@app.command()
def audit(
    scope: ScopeOption,
    db: DbOption = None,
    policy: PolicyOption = None,
    json_output: JsonOption = False,
) -> None:
    """Check nesting depth and single-holder invariants"""
    gov = get_governance(db, policy)
    report = asyncio.run(gov.integrity_report(scope))

    if json_output:
        typer.echo(to_json(report.model_dump(mode="json")))
    else:
        status = "✓ OK" if report.is_consistent else "✗ ISSUES FOUND"
        typer.echo(f"\nHierarchy Integrity: {status}")
        typer.echo(f"  Workspaces: {report.workspace_count}")
        typer.echo(f"  Too deep: {len(report.depth_violations)}")
        for ws_id in report.depth_violations:
            typer.echo(f"    - {ws_id}")
        typer.echo(f"  Multiple holders: {len(report.holder_conflicts)}")
        for ws_id, membership_ids in report.holder_conflicts.items():
            typer.echo(f"    - {ws_id}: {', '.join(membership_ids)}")
        typer.echo(f"  Vacant roles: {len(report.vacant)}")
        typer.echo(f"  Without responsible role: {len(report.ungoverned)}")

    if not report.is_consistent:
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
