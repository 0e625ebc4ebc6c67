"""Agenda committee commands."""
import json
import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import List, Optional

import typer
from dotenv import load_dotenv, find_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .committee import (
    AgendaResult,
    AgendaStatus,
    CommitteeConfig,
    CommitteeEngine,
    CommitteeError,
    CommitteePersistence,
    Operation,
    OperationKind,
    VoteChoice,
)


app = typer.Typer(help="Agenda committee")
agenda_app = typer.Typer(help="Agendas")
member_app = typer.Typer(help="Committee members")
candidate_app = typer.Typer(help="Candidates")
reward_app = typer.Typer(help="Activity rewards")
admin_app = typer.Typer(help="Owner operations")
backup_app = typer.Typer(help="State backups")
app.add_typer(agenda_app, name="agenda")
app.add_typer(member_app, name="member")
app.add_typer(candidate_app, name="candidate")
app.add_typer(reward_app, name="reward")
app.add_typer(admin_app, name="admin")
app.add_typer(backup_app, name="backup")

console = Console()

STAKES_FILENAME = "stakes.json"

STATUS_STYLES = {
    AgendaStatus.NOTICE: "dim",
    AgendaStatus.VOTING: "yellow",
    AgendaStatus.WAITING_EXEC: "cyan",
    AgendaStatus.EXECUTED: "green",
    AgendaStatus.ENDED: "red",
}


def _load_config() -> CommitteeConfig:
    env_path = find_dotenv(usecwd=True)
    if env_path:
        load_dotenv(env_path)
    return CommitteeConfig.from_env()


def _stakes_path(config: CommitteeConfig) -> Path:
    return Path(config.DATA_DIR) / STAKES_FILENAME


def _load_stakes(config: CommitteeConfig) -> dict:
    path = _stakes_path(config)
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _open_engine() -> CommitteeEngine:
    config = _load_config()
    engine = CommitteeEngine.restore(CommitteePersistence(config.DATA_DIR), config=config)
    stakes = _load_stakes(config)
    engine.set_stake_lookup(lambda address: Decimal(stakes.get(address, "0")))
    return engine


def _fail(message: str) -> None:
    console.print(f"[red]Error:[/] {message}")
    raise typer.Exit(code=1)


def _format_ts(ts: Optional[int]) -> str:
    if ts is None:
        return "-"
    return datetime.fromtimestamp(ts).strftime("%Y-%m-%d %H:%M:%S")


def _parse_value(raw: str):
    try:
        return int(raw)
    except ValueError:
        return raw


def _parse_operation(kind: str, params: List[str], function: Optional[str]) -> Operation:
    try:
        op_kind = OperationKind(kind)
    except ValueError:
        valid = ", ".join(k.value for k in OperationKind)
        _fail(f"Unknown operation '{kind}'. Valid options: {valid}")
    parsed = {}
    for item in params:
        if "=" not in item:
            _fail(f"Parameter must be key=value, got '{item}'")
        key, value = item.split("=", 1)
        parsed[key] = _parse_value(value)
    return Operation(op_kind, parsed, function=function)


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show engine logs"),
):
    config = _load_config()
    level = logging.DEBUG if verbose else getattr(logging, config.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    if not verbose:
        logging.getLogger("dao").setLevel(logging.WARNING)


@app.command("params")
def show_params():
    """Current committee parameters"""
    engine = _open_engine()
    table = Table(title="Committee Parameters")
    table.add_column("Parameter", style="cyan")
    table.add_column("Value", justify="right")
    for key, value in engine.get_parameters().items():
        if key == "collaborators":
            for name, address in value.items():
                table.add_row(f"collaborator.{name}", address or "-")
        else:
            table.add_row(key, str(value))
    table.add_row("owner", engine.owner or "(renounced)")
    console.print(table)


@app.command("stake")
def set_stake(
    address: str = typer.Argument(..., help="Candidate address"),
    amount: str = typer.Argument(..., help="Staked amount"),
):
    """Record a candidate's stake in the local stake file"""
    config = _load_config()
    stakes = _load_stakes(config)
    try:
        value = Decimal(amount)
    except InvalidOperation:
        _fail(f"Invalid stake amount '{amount}'")
    if not value.is_finite() or value < 0:
        _fail(f"Invalid stake amount '{amount}'")
    stakes[address] = str(value)
    path = _stakes_path(config)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(stakes, f, indent=2)
    typer.echo(f"Stake for {address}: {amount}")


# ===== Agendas =====

@agenda_app.command("create")
def agenda_create(
    sender: str = typer.Argument(..., help="Creator paying the fee"),
    operation: str = typer.Argument(..., help="Operation kind, e.g. set_max_member"),
    param: List[str] = typer.Option([], "--param", "-p", help="Operation parameter key=value"),
    function: Optional[str] = typer.Option(None, "--function", help="Function name for custom operations"),
    target: Optional[str] = typer.Option(None, "--target", "-t", help="Target, default the committee"),
    notice: Optional[int] = typer.Option(None, "--notice", help="Notice period seconds, default minimum"),
    voting: Optional[int] = typer.Option(None, "--voting", help="Voting period seconds, default minimum"),
    fee: Optional[str] = typer.Option(None, "--fee", help="Fee paid, default the current fee"),
):
    """Create an agenda"""
    engine = _open_engine()
    try:
        op = _parse_operation(operation, param, function)
        agenda_id = engine.create_agenda(
            sender,
            target or engine.address,
            notice if notice is not None else engine.parameters.min_notice_period_seconds,
            voting if voting is not None else engine.parameters.min_voting_period_seconds,
            op,
            fee if fee is not None else engine.parameters.create_agenda_fee,
        )
    except CommitteeError as e:
        _fail(str(e))
    typer.echo(f"Agenda created: {agenda_id}")


@agenda_app.command("vote")
def agenda_vote(
    sender: str = typer.Argument(..., help="Voting member"),
    agenda_id: int = typer.Argument(..., help="Agenda id"),
    choice: str = typer.Argument(..., help="yes / no / abstain"),
    memo: str = typer.Option("", "--memo", "-m", help="Comment stored with the vote"),
):
    """Vote on an agenda"""
    try:
        vote_choice = VoteChoice[choice.upper()]
    except KeyError:
        _fail(f"Invalid choice '{choice}' (yes / no / abstain)")
    engine = _open_engine()
    try:
        engine.cast_vote(sender, agenda_id, vote_choice, memo)
    except CommitteeError as e:
        _fail(str(e))
    typer.echo(f"{sender} voted {vote_choice.name} on agenda {agenda_id}")


@agenda_app.command("execute")
def agenda_execute(
    sender: str = typer.Argument(..., help="Caller"),
    agenda_id: int = typer.Argument(..., help="Agenda id"),
):
    """Execute an accepted agenda"""
    engine = _open_engine()
    try:
        engine.execute_agenda(sender, agenda_id)
    except CommitteeError as e:
        _fail(str(e))
    typer.echo(f"Agenda {agenda_id} executed")


@agenda_app.command("show")
def agenda_show(agenda_id: int = typer.Argument(..., help="Agenda id")):
    """Agenda details"""
    engine = _open_engine()
    try:
        agenda = engine.get_agenda(agenda_id)
    except CommitteeError as e:
        _fail(str(e))

    style = STATUS_STYLES.get(agenda.status, "white")
    lines = [
        f"Status:    [{style}]{agenda.status.name}[/] / {agenda.result.name}",
        f"Target:    {agenda.target}",
        f"Operation: {agenda.operation.name} {agenda.operation.to_dict()['params']}",
        f"Creator:   {agenda.creator} (fee {agenda.fee_paid})",
        f"Created:   {_format_ts(agenda.created_at)}",
        f"Notice:    until {_format_ts(agenda.notice_end_at)}",
        f"Voting:    {_format_ts(agenda.voting_started_at)} -> {_format_ts(agenda.voting_end_at)}",
        f"Executed:  {_format_ts(agenda.executed_at)}",
        f"Votes:     yes={agenda.count_yes} no={agenda.count_no} abstain={agenda.count_abstain}",
    ]
    for entry in agenda.history:
        marker = "[red]override[/]" if entry.kind == "override" else entry.kind
        lines.append(
            f"  {_format_ts(entry.at)} {marker}: {entry.from_status.name} -> {entry.to_status.name}"
            + (f" by {entry.actor}" if entry.actor else "")
        )
    console.print(Panel("\n".join(lines), title=f"Agenda {agenda.id}"))


@agenda_app.command("list")
def agenda_list(
    status: Optional[str] = typer.Option(None, "--status", "-s", help="Filter by status"),
):
    """List agendas"""
    engine = _open_engine()
    filter_status = None
    if status:
        try:
            filter_status = AgendaStatus[status.upper()]
        except KeyError:
            _fail(f"Unknown status '{status}'")

    table = Table(title="Agendas")
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Operation", max_width=35, no_wrap=True)
    table.add_column("Status", width=12)
    table.add_column("Result", width=10)
    table.add_column("Y/N/A", justify="right")
    table.add_column("Created", no_wrap=True)
    for agenda in engine.list_agendas(filter_status):
        style = STATUS_STYLES.get(agenda.status, "white")
        table.add_row(
            str(agenda.id),
            agenda.operation.name,
            f"[{style}]{agenda.status.name}[/]",
            agenda.result.name,
            f"{agenda.count_yes}/{agenda.count_no}/{agenda.count_abstain}",
            _format_ts(agenda.created_at),
        )
    console.print(table)


# ===== Members =====

@candidate_app.command("register")
def candidate_register(
    sender: str = typer.Argument(..., help="Candidate address"),
    contract: str = typer.Argument(..., help="Candidate contract / operator target"),
    name: str = typer.Option("", "--name", "-n", help="Display name"),
):
    """Register as a candidate"""
    engine = _open_engine()
    try:
        engine.register_candidate(sender, contract, name)
    except CommitteeError as e:
        _fail(str(e))
    typer.echo(f"Candidate registered: {sender}")


@member_app.command("change")
def member_change(
    sender: str = typer.Argument(..., help="Candidate taking the slot"),
    slot: int = typer.Argument(..., help="Slot index"),
):
    """Take a committee slot"""
    engine = _open_engine()
    try:
        displaced = engine.change_member(sender, slot)
    except CommitteeError as e:
        _fail(str(e))
    typer.echo(f"{sender} now holds slot {slot}" + (f" (replaced {displaced})" if displaced else ""))


@member_app.command("retire")
def member_retire(sender: str = typer.Argument(..., help="Member leaving")):
    """Leave the committee"""
    engine = _open_engine()
    try:
        slot = engine.retire_member(sender)
    except CommitteeError as e:
        _fail(str(e))
    typer.echo(f"{sender} left slot {slot}")


@member_app.command("list")
def member_list():
    """Committee slots"""
    engine = _open_engine()
    table = Table(title=f"Committee ({engine.roster.occupied_count()}/{engine.roster.max_member})")
    table.add_column("Slot", justify="right")
    table.add_column("Member", style="cyan")
    table.add_column("Joined", no_wrap=True)
    table.add_column("Claimable", justify="right")
    for slot in engine.roster.slots():
        if slot.is_empty:
            table.add_row(str(slot.index), "[dim]empty[/]", "-", "-")
        else:
            table.add_row(
                str(slot.index),
                slot.occupant,
                _format_ts(slot.joined_at),
                str(engine.get_claimable_activity_reward(slot.occupant)),
            )
    console.print(table)


# ===== Rewards =====

@reward_app.command("show")
def reward_show(address: str = typer.Argument(..., help="Candidate address")):
    """Claimable activity reward"""
    engine = _open_engine()
    typer.echo(f"{address}: {engine.get_claimable_activity_reward(address)}")


@reward_app.command("claim")
def reward_claim(sender: str = typer.Argument(..., help="Candidate claiming")):
    """Claim activity reward"""
    engine = _open_engine()
    try:
        amount = engine.claim_activity_reward(sender)
    except CommitteeError as e:
        _fail(str(e))
    typer.echo(f"{sender} claimed {amount}")


# ===== Owner =====

@admin_app.command("set-status")
def admin_set_status(
    sender: str = typer.Argument(..., help="Owner"),
    agenda_id: int = typer.Argument(..., help="Agenda id"),
    status: str = typer.Argument(..., help="Status name, e.g. ENDED"),
    result: str = typer.Argument(..., help="Result name, e.g. REJECTED"),
):
    """Override an agenda's status and result"""
    try:
        new_status = AgendaStatus[status.upper()]
        new_result = AgendaResult[result.upper()]
    except KeyError as e:
        _fail(f"Unknown value {e}")
    engine = _open_engine()
    try:
        engine.set_agenda_status(sender, agenda_id, new_status, new_result)
    except CommitteeError as e:
        _fail(str(e))
    console.print(f"[yellow]Agenda {agenda_id} overridden to {new_status.name} / {new_result.name}[/]")


@admin_app.command("transfer-ownership")
def admin_transfer_ownership(
    sender: str = typer.Argument(..., help="Current owner"),
    new_owner: str = typer.Argument(..., help="New owner"),
):
    """Transfer committee ownership"""
    engine = _open_engine()
    try:
        engine.transfer_ownership(sender, new_owner)
    except CommitteeError as e:
        _fail(str(e))
    typer.echo(f"Owner is now {new_owner}")


@admin_app.command("renounce-ownership")
def admin_renounce_ownership(sender: str = typer.Argument(..., help="Current owner")):
    """Give up ownership; only agendas can change the committee afterwards"""
    engine = _open_engine()
    try:
        engine.renounce_ownership(sender)
    except CommitteeError as e:
        _fail(str(e))
    typer.echo("Ownership renounced")


# ===== Backups =====

@backup_app.command("create")
def backup_create(
    tag: Optional[str] = typer.Option(None, "--tag", help="Label appended to the backup name"),
):
    """Copy the current state file into the backup directory"""
    config = _load_config()
    persistence = CommitteePersistence(config.DATA_DIR)
    if not persistence.exists():
        _fail(f"No committee state at {persistence.state_path}")
    backup_path = persistence.create_backup(tag)
    if backup_path is None:
        _fail("Backup failed, see logs")
    typer.echo(f"Backup written: {backup_path}")


@backup_app.command("list")
def backup_list():
    """Available backups, newest first"""
    config = _load_config()
    backups = CommitteePersistence(config.DATA_DIR).list_backups()
    if not backups:
        typer.echo("No backups")
        return
    for path in backups:
        typer.echo(path.name)


def main():
    app()


if __name__ == "__main__":
    main()
