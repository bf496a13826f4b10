"""
Becky chat service - LLM conversation loop and tool bridge.

Becky answers with the OpenAI chat-completions API. When the model asks for
a tool, the ToolBridge forwards the call to the Becky API's own HTTP
endpoints with the caller's bearer token, so every tool goes through the
same validation and ownership checks as a regular client.
"""
import json
import logging
import time

import requests
from flask import current_app
from openai import OpenAI

from services.account_service import AccountService
from services.movement_service import MovementService

logger = logging.getLogger(__name__)


class BeckyUnavailableError(Exception):
    """Raised when the assistant is not configured or the LLM is unreachable."""
    pass


def _tool(name, description, properties=None, required=None):
    return {
        'type': 'function',
        'function': {
            'name': name,
            'description': description,
            'parameters': {
                'type': 'object',
                'properties': properties or {},
                'required': required or [],
            },
        },
    }


TOOLS = [
    _tool('get_user_accounts', 'Get all accounts for the user with their recent movements'),
    _tool('create_account', 'Create a new account for the user', {
        'name': {'type': 'string', 'description': 'Account name (e.g., Main Checking, Savings)'},
        'bank': {'type': 'string', 'description': 'Bank name'},
        'type': {'type': 'string', 'enum': ['checking', 'savings', 'cash', 'credit']},
    }, ['name']),
    _tool('get_account_movements', 'Get movements for a specific account', {
        'accountId': {'type': 'integer', 'description': 'Account ID'},
    }, ['accountId']),
    _tool('create_movement', 'Create a new income or expense movement', {
        'accountId': {'type': 'integer', 'description': 'Account ID to add the movement to'},
        'type': {'type': 'string', 'enum': ['income', 'expense']},
        'concept': {'type': 'string', 'enum': ['needs', 'wants', 'savings', 'others']},
        'amount': {'type': 'number', 'description': 'Amount in dollars'},
        'description': {'type': 'string', 'description': 'Description of the movement'},
        'date': {'type': 'string', 'description': 'Date in YYYY-MM-DD format'},
        'category': {'type': 'string', 'description': 'Optional category'},
    }, ['accountId', 'type', 'concept', 'amount', 'description', 'date']),
    _tool('get_monthly_expenses', 'Get total expenses for a month, optionally for one concept', {
        'month': {'type': 'string', 'description': 'Month name (e.g., January) or YYYY-MM'},
        'concept': {'type': 'string', 'enum': ['needs', 'wants', 'savings', 'others']},
    }, ['month']),
    _tool('get_monthly_spending_by_category', 'Get monthly spending breakdown by category', {
        'month': {'type': 'string', 'description': 'Month name (e.g., January) or YYYY-MM'},
    }, ['month']),
    _tool('get_spending_trends', 'Get income and expenses over the last few months', {
        'months': {'type': 'integer', 'description': 'Number of months to analyze (default: 6)'},
    }),
    _tool('get_financial_summary', 'Get the user financial summary'),
    _tool('get_savings_progress', 'Get savings progress against the savings goal'),
    _tool('get_pending_loans', 'Get active loans and shared expenses with pending amounts'),
    _tool('create_shared_expense', 'Record an expense the user paid for a group, split between participants', {
        'accountId': {'type': 'integer'},
        'totalAmount': {'type': 'number', 'description': 'Full amount paid'},
        'participants': {'type': 'integer', 'description': 'Number of people sharing, including the user (at least 2)'},
        'description': {'type': 'string'},
        'date': {'type': 'string', 'description': 'Date in YYYY-MM-DD format'},
        'category': {'type': 'string'},
        'concept': {'type': 'string', 'enum': ['needs', 'wants', 'savings', 'others']},
        'participantsList': {'type': 'array', 'items': {'type': 'string'}},
    }, ['accountId', 'totalAmount', 'participants', 'description', 'date']),
    _tool('create_simple_loan', 'Record money the user lent to or borrowed from someone', {
        'accountId': {'type': 'integer'},
        'amount': {'type': 'number'},
        'loanType': {'type': 'string', 'enum': ['lent', 'borrowed']},
        'description': {'type': 'string'},
        'date': {'type': 'string', 'description': 'Date in YYYY-MM-DD format'},
        'category': {'type': 'string'},
        'relatedPerson': {'type': 'string'},
    }, ['accountId', 'amount', 'loanType', 'description', 'date']),
    _tool('settle_loan', 'Record a full or partial payment of a loan', {
        'movementId': {'type': 'integer', 'description': 'Loan movement ID'},
        'amountPaid': {'type': 'number', 'description': 'Amount paid; omit to settle everything pending'},
        'description': {'type': 'string'},
    }, ['movementId']),
]

SYSTEM_PROMPT = """You are Becky, an AI personal bookkeeper. You help users manage their finances by analyzing their spending patterns and providing insights.

User: {name}
Current Context: {context}
Today: {today}

Always be helpful, friendly, and provide actionable financial advice. When you need to get data or perform actions, use the available tools. Be specific about amounts, dates, and categories when creating movements. Answer in the language the user writes in."""


class ToolBridge:
    """Forward tool calls to the Becky HTTP API on behalf of a user."""

    def __init__(self, base_url, token, timeout=30, session=None):
        self.base_url = base_url.rstrip('/')
        self.token = token
        self.timeout = timeout
        self.session = session or requests.Session()

    def _route(self, name, args):
        """Map a tool call to (method, path, query params, json body)."""
        if name == 'get_user_accounts':
            return 'GET', '/accounts', None, None
        if name == 'create_account':
            return 'POST', '/accounts', None, args
        if name == 'get_account_movements':
            return 'GET', f"/movements/account/{args['accountId']}", None, None
        if name == 'create_movement':
            body = {k: v for k, v in args.items() if k != 'accountId'}
            return 'POST', f"/movements/account/{args['accountId']}", None, body
        if name == 'get_monthly_expenses':
            params = {'month': args['month']}
            concept = args.get('concept') or args.get('category')
            if concept:
                params['concept'] = concept
            return 'GET', '/movements/monthly', params, None
        if name == 'get_monthly_spending_by_category':
            return 'GET', '/movements/monthly/categories', {'month': args['month']}, None
        if name == 'get_spending_trends':
            return 'GET', '/movements/trends', {'months': args.get('months') or 6}, None
        if name == 'get_financial_summary':
            return 'GET', '/users/me/summary', None, None
        if name == 'get_savings_progress':
            return 'GET', '/users/me/savings', None, None
        if name == 'get_pending_loans':
            return 'GET', '/loans/pending', None, None
        if name == 'create_shared_expense':
            return 'POST', '/loans/shared-expense', None, args
        if name == 'create_simple_loan':
            return 'POST', '/loans/simple-loan', None, args
        if name == 'settle_loan':
            body = {k: v for k, v in args.items() if k != 'movementId'}
            return 'PATCH', f"/loans/{args['movementId']}/settle", None, body
        return None

    def _validate(self, name, args):
        """Check create payloads locally before sending them."""
        if name == 'create_account':
            errors = AccountService.validate_account_data(args)
            if errors:
                return {'error': 'Invalid account data', 'details': errors}
        elif name == 'create_movement':
            errors, _ = MovementService.validate_movement_data(args)
            if errors:
                return {'error': 'Invalid movement data', 'details': errors}
        return None

    def call(self, name, args):
        """Execute a tool call and return a JSON-serializable result.

        Failures are returned as {"error": ...} so the model can explain
        them to the user.
        """
        if not isinstance(args, dict):
            return {'error': 'Tool arguments must be an object'}

        invalid = self._validate(name, args)
        if invalid:
            return invalid

        try:
            route = self._route(name, args)
        except KeyError as e:
            return {'error': f'Missing argument: {e.args[0]}'}
        if route is None:
            return {'error': f'Unknown tool: {name}'}

        method, path, params, body = route
        try:
            response = self.session.request(
                method,
                f'{self.base_url}{path}',
                params=params,
                json=body,
                headers={'Authorization': f'Bearer {self.token}'},
                timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.error(f"Tool {name} request failed: {type(e).__name__}")
            return {'error': 'Could not reach the Becky API'}

        try:
            data = response.json()
        except ValueError:
            data = None

        if not response.ok:
            message = data.get('error') if isinstance(data, dict) else None
            return {
                'error': message or f'Request failed with status {response.status_code}',
                'status': response.status_code,
            }

        return data if data is not None else {'ok': True}


class BeckyService:
    """Conversation loop between the user, the LLM and the tools."""

    MAX_TOOL_ROUNDS = 5
    MAX_RETRIES = 3
    BASE_DELAY = 1.0
    FALLBACK_ANSWER = 'I processed your request.'

    def __init__(self, api_key=None, model=None):
        self.api_key = api_key
        self.model = model or 'gpt-4o'
        self._client = None

    @classmethod
    def from_config(cls):
        return cls(
            api_key=current_app.config.get('OPENAI_API_KEY'),
            model=current_app.config.get('BECKY_MODEL')
        )

    @property
    def available(self):
        return bool(self.api_key)

    @property
    def client(self):
        """Lazy initialization of OpenAI client."""
        if self._client is None and self.api_key:
            self._client = OpenAI(api_key=self.api_key)
        return self._client

    def build_messages(self, user_name, context_data, message, today):
        """System prompt, previous exchanges, then the new message."""
        context = {
            'preferences': context_data.get('preferences', {}),
            'lastInteraction': context_data.get('lastInteraction'),
        }
        messages = [{
            'role': 'system',
            'content': SYSTEM_PROMPT.format(name=user_name, context=json.dumps(context), today=today),
        }]
        for exchange in context_data.get('conversationHistory', []):
            messages.append({'role': 'user', 'content': exchange.get('userMessage', '')})
            messages.append({'role': 'assistant', 'content': exchange.get('beckyResponse', '')})
        messages.append({'role': 'user', 'content': message})
        return messages

    def _complete(self, messages, tool_choice='auto'):
        for attempt in range(self.MAX_RETRIES):
            try:
                return self.client.chat.completions.create(
                    model=self.model,
                    messages=messages,
                    tools=TOOLS,
                    tool_choice=tool_choice
                )
            except Exception as e:
                # Log only exception type; the payload may contain sensitive details
                logger.warning(
                    f"Becky LLM call failed (attempt {attempt + 1}/{self.MAX_RETRIES}): "
                    f"{type(e).__name__}"
                )
                if attempt < self.MAX_RETRIES - 1:
                    time.sleep(self.BASE_DELAY * (2 ** attempt))
                else:
                    logger.error("All retry attempts exhausted")
                    raise BeckyUnavailableError('Becky is not available right now') from e

    def run(self, messages, bridge):
        """Run the tool loop until the model answers in text.

        Returns:
            The assistant's answer
        """
        if not self.client:
            raise BeckyUnavailableError('Becky is not available right now')

        for _ in range(self.MAX_TOOL_ROUNDS):
            reply = self._complete(messages).choices[0].message
            if not reply.tool_calls:
                return reply.content or self.FALLBACK_ANSWER

            messages.append({
                'role': 'assistant',
                'content': reply.content,
                'tool_calls': [
                    {
                        'id': call.id,
                        'type': 'function',
                        'function': {'name': call.function.name, 'arguments': call.function.arguments},
                    }
                    for call in reply.tool_calls
                ],
            })

            for call in reply.tool_calls:
                try:
                    args = json.loads(call.function.arguments or '{}')
                except json.JSONDecodeError:
                    result = {'error': 'Tool arguments are not valid JSON'}
                else:
                    logger.info(f"Becky tool call: {call.function.name}")
                    result = bridge.call(call.function.name, args)

                messages.append({
                    'role': 'tool',
                    'tool_call_id': call.id,
                    'content': json.dumps(result),
                })

        logger.warning("Becky reached the tool round limit, asking for a final answer")
        reply = self._complete(messages, tool_choice='none').choices[0].message
        return reply.content or self.FALLBACK_ANSWER
