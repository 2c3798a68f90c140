from __future__ import annotations

import argparse
import json
import os
from dataclasses import asdict

from .config import ClientConfig, ConfigError, load_config
from .exceptions import OrderFlowError
from .models_orders import OrderStatus, PaymentMethod
from .order_queries import by_status, payment_desk_summary, search_orders
from .order_service import ActionResult, OrderService
from .order_workflow import available_actions
from .session import ActorContext, ApiSession


def _session(args: argparse.Namespace) -> tuple[ClientConfig, ApiSession]:
    config = load_config(args.env_file)
    token = args.token or os.getenv("RETAIL_OPS_TOKEN")
    return config, ApiSession(config, token=token)


def _actor(args: argparse.Namespace) -> ActorContext:
    actor_id = args.actor_id or os.getenv("RETAIL_OPS_ACTOR_ID")
    actor_role = args.actor_role or os.getenv("RETAIL_OPS_ACTOR_ROLE")
    if not actor_id or not actor_role:
        raise ConfigError("Missing required config values: RETAIL_OPS_ACTOR_ID, RETAIL_OPS_ACTOR_ROLE")
    try:
        return ActorContext.from_identity(actor_id, actor_role, full_name=args.actor_name)
    except ValueError as exc:
        raise ConfigError(f"Invalid RETAIL_OPS_ACTOR_ROLE: {actor_role!r}") from exc


def _service(args: argparse.Namespace) -> OrderService:
    config, session = _session(args)
    service = OrderService.from_config(
        config,
        orders=session.orders_client(),
        actor=_actor(args),
        users=session.users_client(),
    )
    service.refresh()
    return service


def _print(payload: object) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def _print_result(result: ActionResult) -> None:
    _print({"message": result.message, "order": result.order.to_wire()})


def cmd_list(args: argparse.Namespace) -> None:
    _, session = _session(args)
    orders = session.orders_client().list_orders()
    if args.status:
        orders = [order for order in orders if by_status(*args.status)(order)]
    orders = search_orders(orders, args.search)
    _print([order.to_wire() for order in orders])


def cmd_summary(args: argparse.Namespace) -> None:
    _, session = _session(args)
    _print(asdict(payment_desk_summary(session.orders_client().list_orders())))


def cmd_actions(args: argparse.Namespace) -> None:
    service = _service(args)
    order = service.ledger.get(args.order_id)
    actions = available_actions(order, service.actor.role)
    _print(
        [
            {
                "action": action.action.value,
                "label": action.label,
                "requires_assignment": action.requires_assignment,
                "required_role": action.required_role.value if action.required_role else None,
            }
            for action in actions
        ]
    )


def cmd_pay(args: argparse.Namespace) -> None:
    service = _service(args)
    _print_result(service.record_payment(args.order_id, args.amount, args.method, args.reference, args.notes))


def cmd_advance(args: argparse.Namespace) -> None:
    service = _service(args)
    _print_result(service.advance(args.order_id, args.action, assignee_id=args.assignee, notes=args.notes))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="retail-ops", description="Retail operations order desk")
    parser.add_argument("--env-file", default=None)
    parser.add_argument("--token", default=None)
    parser.add_argument("--actor-id", default=None)
    parser.add_argument("--actor-role", default=None)
    parser.add_argument("--actor-name", default=None)
    subparsers = parser.add_subparsers(dest="command", required=True)

    orders_parser = subparsers.add_parser("orders")
    orders = orders_parser.add_subparsers(dest="orders_command", required=True)

    list_parser = orders.add_parser("list")
    list_parser.add_argument(
        "--status", action="append", default=None, choices=[status.value for status in OrderStatus]
    )
    list_parser.add_argument("--search", default=None)
    list_parser.set_defaults(func=cmd_list)

    summary_parser = orders.add_parser("summary")
    summary_parser.set_defaults(func=cmd_summary)

    actions_parser = orders.add_parser("actions")
    actions_parser.add_argument("order_id")
    actions_parser.set_defaults(func=cmd_actions)

    pay_parser = orders.add_parser("pay")
    pay_parser.add_argument("order_id")
    pay_parser.add_argument("--amount", type=int, required=True)
    pay_parser.add_argument("--method", required=True, choices=[method.value for method in PaymentMethod])
    pay_parser.add_argument("--reference", default=None)
    pay_parser.add_argument("--notes", default=None)
    pay_parser.set_defaults(func=cmd_pay)

    advance_parser = orders.add_parser("advance")
    advance_parser.add_argument("order_id")
    advance_parser.add_argument("action")
    advance_parser.add_argument("--assignee", default=None)
    advance_parser.add_argument("--notes", default=None)
    advance_parser.set_defaults(func=cmd_advance)
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    try:
        args.func(args)
    except OrderFlowError as exc:
        _print({"error": exc.code, "message": exc.message, "trace_id": getattr(exc, "trace_id", None)})
        raise SystemExit(1) from exc
    except ConfigError as exc:
        _print({"error": "CONFIG_ERROR", "message": str(exc), "trace_id": None})
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
