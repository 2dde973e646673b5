import logging
from collections.abc import Callable
from datetime import datetime

from app.models.schemas import (
    FinancialTip,
    FinanceSummary,
    MentorConfig,
    MentorFeedback,
    MentorSummary,
    Mission,
    MissionStatus,
    PatternSeverity,
    QuickAnswer,
    RuleInfo,
    Transaction,
)
from app.services import faq
from app.services.finance import compare_with_previous_month, detect_patterns, goal_progress, summarize_month
from app.services.missions import generate_weekly_missions, recompute_progress
from app.services.rules import ALL_RULES, RULES_BY_ID, evaluate
from app.services.storage import KeyValueStore, MentorStorage
from app.services.templates import format_currency, format_percent
from constants import STAGE_CHALLENGES, STAGE_MESSAGES

logger = logging.getLogger(__name__)

DEFAULT_GOAL = 100000.0
MAX_TIPS = 3


class MentorService:
    """
    Offline financial mentor.

    Every call is synchronous and deterministic given the transactions, the
    key-value store and the clock, so callers (and tests) can pin `now`.
    """

    def __init__(self, store: KeyValueStore, clock: Callable[[], datetime] | None = None):
        self.storage = MentorStorage(store)
        self.clock = clock or datetime.now

    def _summary_with_balance(self, transactions: list[Transaction], balance: float, now: datetime) -> FinanceSummary:
        return summarize_month(transactions, now).model_copy(update={"balance": balance})

    def get_mentor_feedback(
        self,
        transactions: list[Transaction],
        balance: float,
        user_name: str,
        goal: float = DEFAULT_GOAL,
        now: datetime | None = None,
    ) -> MentorFeedback:
        now = now or self.clock()
        summary = self._summary_with_balance(transactions, balance, now)
        stage = goal_progress(balance, goal).stage

        insights = evaluate(summary, transactions, goal, self.storage.load_enabled_rules(), now)

        return MentorFeedback(
            stage=stage,
            message=STAGE_MESSAGES[stage.value].format(name=user_name),
            challenge=STAGE_CHALLENGES[stage.value],
            insights=insights,
        )

    def get_financial_tips(
        self,
        transactions: list[Transaction],
        balance: float,
        goal: float = DEFAULT_GOAL,
        now: datetime | None = None,
    ) -> list[FinancialTip]:
        now = now or self.clock()
        summary = self._summary_with_balance(transactions, balance, now)
        tips: list[FinancialTip] = []

        if summary.top_categories:
            top = summary.top_categories[0]
            if top.percent > 20:
                tips.append(
                    FinancialTip(
                        title=f"Reduza {top.category.value}",
                        content=(
                            f"Você gastou {format_percent(top.percent)} da sua renda em {top.category.value}. "
                            f"Reduzir 20% geraria economia de {format_currency(top.amount * 0.2)}."
                        ),
                        severity=PatternSeverity.HIGH,
                    )
                )

        savings_rate = summary.savings_month / summary.income_month * 100 if summary.income_month > 0 else 0.0
        if savings_rate < 10:
            tips.append(
                FinancialTip(
                    title="Aumente sua Poupança",
                    content=(
                        f"Você está poupando apenas {format_percent(savings_rate)}. Tente atingir pelo menos 10% "
                        "da renda. Comece cortando pequenos gastos diários."
                    ),
                    severity=PatternSeverity.HIGH,
                )
            )
        elif savings_rate > 20:
            tips.append(
                FinancialTip(
                    title="Parabéns pela Disciplina!",
                    content=(
                        f"Você está poupando {format_percent(savings_rate)} da renda! Considere investir parte "
                        "desse dinheiro para acelerar o crescimento."
                    ),
                    severity=PatternSeverity.LOW,
                )
            )

        progress = goal_progress(balance, goal)
        if progress.percent < 25:
            tips.append(
                FinancialTip(
                    title="Acelere Seus Aportes",
                    content=(
                        f"Faltam {format_currency(progress.remaining)} para sua meta. Aumentar sua poupança mensal "
                        "em R$ 100 pode reduzir significativamente o tempo para atingir o objetivo."
                    ),
                    severity=PatternSeverity.MEDIUM,
                )
            )
        elif progress.percent > 75:
            tips.append(
                FinancialTip(
                    title="Reta Final!",
                    content=(
                        f"Você está a {format_percent(100 - progress.percent)} da sua meta! Mantenha o foco e "
                        "evite gastos desnecessários nesta reta final."
                    ),
                    severity=PatternSeverity.LOW,
                )
            )

        if len(tips) < MAX_TIPS:
            tips.append(
                FinancialTip(
                    title="Revise Gastos Fixos",
                    content=(
                        "Assinaturas, planos e serviços fixos podem estar consumindo mais do que você imagina. "
                        "Revise e cancele o que não usa."
                    ),
                    severity=PatternSeverity.MEDIUM,
                )
            )

        return tips[:MAX_TIPS]

    def get_quick_answer(
        self, question: str, balance: float, summary: FinanceSummary, goal: float = DEFAULT_GOAL
    ) -> QuickAnswer:
        return faq.quick_answer(question, balance, summary, goal)

    def get_weekly_missions(
        self,
        transactions: list[Transaction],
        force_regenerate: bool = False,
        now: datetime | None = None,
    ) -> list[Mission]:
        """
        Purges stale missions, then either regenerates the week's set (none
        active, or forced) or refreshes progress on the stored set.
        """
        now = now or self.clock()
        missions = self.storage.cleanup_old_missions(now)

        active = [m for m in missions if m.status == MissionStatus.ACTIVE]
        if not active or force_regenerate:
            missions = generate_weekly_missions(summarize_month(transactions, now), transactions, now)
            logger.info(f"Regenerated weekly missions: {[m.id for m in missions]}")
        else:
            missions = [recompute_progress(m, transactions, now) for m in missions]

        self.storage.save_missions(missions)
        return missions

    def update_mission_manually(self, mission_id: str, current_value: float) -> Mission | None:
        return self.storage.update_mission_progress(mission_id, current_value)

    def get_summary(
        self, transactions: list[Transaction], goal: float = DEFAULT_GOAL, now: datetime | None = None
    ) -> MentorSummary:
        now = now or self.clock()
        comparison = compare_with_previous_month(transactions, now)
        return MentorSummary(
            comparison=comparison,
            patterns=detect_patterns(transactions, now),
            goal=goal_progress(comparison.current.balance, goal),
        )

    # --- Preferences ---
    def get_rules(self) -> list[RuleInfo]:
        enabled_ids = self.storage.load_enabled_rules()
        return [
            RuleInfo(
                id=rule.id,
                name=rule.name,
                description=rule.description,
                severity=rule.severity,
                priority=rule.priority,
                enabled=rule.enabled and (enabled_ids is None or rule.id in enabled_ids),
            )
            for rule in ALL_RULES
        ]

    def set_enabled_rules(self, rule_ids: list[str]) -> None:
        unknown = [rid for rid in rule_ids if rid not in RULES_BY_ID]
        if unknown:
            raise ValueError(f"Unknown rule ids: {', '.join(unknown)}")
        self.storage.save_enabled_rules(rule_ids)

    def get_config(self) -> MentorConfig:
        config = self.storage.load_config()
        if config is None:
            return MentorConfig(budget_limits=self.storage.load_budget_limits())
        return config

    def save_config(self, config: MentorConfig) -> None:
        self.storage.save_config(config)
        self.storage.save_budget_limits(config.budget_limits)

    def reset(self) -> None:
        self.storage.clear_all()
