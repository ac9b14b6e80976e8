"""Starlette handlers for plan, state, diff, logs, phases, apply and health routes."""