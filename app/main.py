import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import asyncio
import json
import time
from datetime import date

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
import streamlit as st

from coach.ai_client import AIClient, PROVIDERS
from coach.analyzer import money
from coach.categories import category_options, get_category_info
from coach.config import configure_logging, load_settings
from coach.domain import AIAnalysis, BudgetSuggestion, SavingTips
from coach.events import NOTIFICATION, notification_log
from coach.goals import OVERDUE, REACHED, goal_status, progress_percent
from coach.prompts import build_scenario_prompt, detect_scenarios
from coach.services import FinanceAssistant
from coach.storage import JsonFileStore, Storage

st.set_page_config(page_title="AI Finance Assistant", layout="wide")


def build_assistant() -> FinanceAssistant:
    settings = load_settings()
    configure_logging(settings.log_level)
    storage = Storage(JsonFileStore(settings.data_dir))
    assistant = FinanceAssistant(storage, AIClient(settings), settings)
    assistant.bus.subscribe(NOTIFICATION, notification_log(st.session_state.notifications))
    return assistant


if "notifications" not in st.session_state:
    st.session_state.notifications = []
if "assistant" not in st.session_state:
    st.session_state.assistant = build_assistant()

assistant: FinanceAssistant = st.session_state.assistant
sym = assistant.config.currency_symbol


def run(coro):
    return asyncio.run(coro)


def show_notifications():
    pending = st.session_state.notifications
    while pending:
        note = pending.pop(0)
        level = note.get("level", "success")
        if level == "error":
            st.error(note["message"])
        elif level == "info":
            st.info(note["message"])
        else:
            st.success(note["message"])


def render_analysis(analysis: AIAnalysis):
    st.markdown(f"**📖 Your Financial Story**\n\n_{analysis.story}_")
    st.markdown(f"**🧠 Key Insight**\n\n{analysis.insight}")
    st.markdown("**💡 Smart Tips**")
    for tip in analysis.tips:
        st.markdown(f"- {tip}")
    st.markdown(f"**💪 Motivation**\n\n{analysis.motivation}")


def render_budget(budget: BudgetSuggestion):
    c1, c2, c3 = st.columns(3)
    c1.metric("Needs (50%)", money(budget.needs, sym))
    c2.metric("Wants (30%)", money(budget.wants, sym))
    c3.metric("Savings (20%)", money(budget.savings, sym))
    st.caption(budget.explanation)


def tx_to_df(transactions) -> pd.DataFrame:
    rows = [
        {
            "id": t.id,
            "date": pd.to_datetime(t.ts, errors="coerce"),
            "type": t.type,
            "amount": t.amount,
            "category": get_category_info(t.category).name,
            "description": t.description,
        }
        for t in transactions
    ]
    return pd.DataFrame(rows, columns=["id", "date", "type", "amount", "category", "description"])


st.sidebar.markdown("### 🤖 AI Finance Assistant")
status = assistant.api_status()
st.sidebar.caption(f"**{status.status}**: {status.message}")

menu = st.sidebar.radio("Menu", ["📊 Dashboard", "📈 Analytics", "🎯 Goals", "🤖 AI Insights", "💾 Data"])

# background re-analysis, only while an analysis view is in front
if menu in ("📊 Dashboard", "🤖 AI Insights"):
    now = time.time()
    last_run = st.session_state.setdefault("last_periodic_run", now)
    if assistant.periodic_due(last_run, now):
        st.session_state.last_periodic_run = now
        run(assistant.periodic_tick(foreground=True))

view = assistant.dashboard()
totals = view["totals"]

k1, k2, k3, k4 = st.columns(4)
k1.metric("Total Income", money(totals.income, sym))
k2.metric("Total Expenses", money(totals.expenses, sym))
k3.metric("Net Balance", f"{'' if totals.is_positive else '-'}{money(abs(totals.balance), sym)}")
k4.metric("Transactions", len(assistant.transactions))

if menu == "📊 Dashboard":
    left, right = st.columns([1, 2])

    with left:
        st.subheader("➕ Add Transaction")
        tx_type = st.radio("Type", ["expense", "income"], horizontal=True)
        options = category_options(tx_type)
        with st.form("transaction_form", clear_on_submit=True):
            amount = st.number_input(f"Amount ({sym})", min_value=0.0, step=100.0, format="%.2f")
            category = st.selectbox("Category", options, format_func=lambda o: o[1])
            description = st.text_input("Description (optional)")
            submitted = st.form_submit_button("Add Transaction")

        if submitted:
            result = assistant.add_transaction(tx_type, amount, category[0], description)
            if result.is_right() and assistant.wants_auto_analysis():
                run(assistant.perform_ai_analysis())

    with right:
        insights = view["insights"]
        st.subheader("💡 Insights")
        st.write(insights.summary)
        for alert in insights.alerts:
            if alert.severity == "danger":
                st.error(alert.message)
            elif alert.severity == "warning":
                st.warning(alert.message)
            else:
                st.info(alert.message)
        for rec in insights.recommendations:
            st.markdown(f"- {rec}")

        if assistant.ai_analysis is not None:
            st.subheader("🤖 AI Analysis")
            render_analysis(assistant.ai_analysis)

    st.subheader("🧾 Recent Transactions")
    for t in assistant.transactions[:10]:
        info = get_category_info(t.category)
        c1, c2, c3 = st.columns([5, 2, 1])
        sign = "+" if t.type == "income" else "-"
        c1.write(f"{info.icon} {t.description} · {t.ts[:10]}")
        c2.write(f"{sign}{money(t.amount, sym)}")
        if c3.button("🗑", key=f"del_{t.id}"):
            assistant.delete_transaction(t.id)
            st.rerun()

elif menu == "📈 Analytics":
    breakdown = view["breakdown"]
    if breakdown:
        df_cat = pd.DataFrame(
            [{"Category": e.info.name, "Amount": e.amount, "Share": round(e.percentage, 1)} for e in breakdown]
        )
        fig_cat = px.pie(df_cat, values="Amount", names="Category", title="Expenses by Category")
        st.plotly_chart(fig_cat, use_container_width=True)
        st.table(df_cat)
    else:
        st.info("No expenses recorded yet.")

    trends = view["trends"]
    if trends:
        periods = [t.period for t in trends]
        fig_ts = go.Figure()
        fig_ts.add_trace(go.Scatter(x=periods, y=[t.income for t in trends], mode="lines+markers", name="Income"))
        fig_ts.add_trace(go.Scatter(x=periods, y=[t.expenses for t in trends], mode="lines+markers", name="Expenses"))
        fig_ts.update_layout(template="plotly_dark", margin=dict(t=30, b=10, l=10, r=10))
        st.plotly_chart(fig_ts, use_container_width=True)

    st.subheader("💰 50/30/20 Budget")
    render_budget(view["budget"])

elif menu == "🎯 Goals":
    with st.form("goal_form", clear_on_submit=True):
        name = st.text_input("Goal name")
        target = st.number_input(f"Target ({sym})", min_value=0.0, step=1000.0)
        deadline = st.date_input("Deadline", value=date.today())
        goal_category = st.selectbox("Category", ["savings", "purchase", "debt", "other"])
        if st.form_submit_button("Add Goal"):
            assistant.add_goal(name, target, deadline.isoformat(), goal_category)

    for goal in assistant.goals:
        state = goal_status(goal)
        label = {REACHED: "✅ reached", OVERDUE: "⏰ overdue"}.get(state, "🎯 active")
        st.markdown(f"**{goal.name}** · {label} · due {goal.deadline or '-'}")
        st.progress(progress_percent(goal) / 100)
        st.caption(f"{money(goal.current_amount, sym)} / {money(goal.target, sym)}")
        c1, c2, c3 = st.columns([2, 1, 1])
        amount = c1.number_input("Contribution", min_value=0.0, step=500.0, key=f"contrib_{goal.id}")
        if c2.button("Add progress", key=f"add_{goal.id}"):
            assistant.contribute_to_goal(goal.id, amount)
            st.rerun()
        if c3.button("Delete", key=f"goal_del_{goal.id}"):
            assistant.delete_goal(goal.id)
            st.rerun()

elif menu == "🤖 AI Insights":
    with st.expander("⚙️ AI Settings"):
        current = assistant.ai_client.ai_settings
        provider = st.selectbox("Provider", list(PROVIDERS), index=list(PROVIDERS).index(current.provider)
                                if current.provider in PROVIDERS else 0)
        api_key = st.text_input("API key", value=current.api_key, type="password",
                                help=f"Get one at {PROVIDERS[provider].signup_url}")
        auto = st.checkbox("Auto-analyze new transactions", value=current.auto_analysis)
        c1, c2 = st.columns(2)
        if c1.button("Save settings"):
            assistant.update_ai_settings(provider=provider, api_key=api_key, auto_analysis=auto)
        if c2.button("Test connection"):
            ok, message = run(assistant.test_connection())
            (st.success if ok else st.error)(message)

    c1, c2, c3, c4 = st.columns(4)
    if c1.button("🔍 Full analysis"):
        run(assistant.handle_ai_action("analyze"))
    if c2.button("💡 Budget plan"):
        result = run(assistant.handle_ai_action("budget"))
        if result is not None:
            render_budget(result.value)
    if c3.button("💰 Saving tips"):
        result = run(assistant.handle_ai_action("tips"))
        if result is not None and isinstance(result.value, SavingTips):
            for tip in result.value.tips:
                st.markdown(f"- {tip}")
    if c4.button("📈 Investments"):
        result = run(assistant.handle_ai_action("investment"))
        if result is not None:
            for option in result.value:
                st.markdown(f"**{option.title}**: {option.description}")

    if assistant.ai_analysis is not None:
        render_analysis(assistant.ai_analysis)
        if assistant.last_result is not None:
            st.caption(f"Source: {assistant.last_result.source}")
    else:
        st.info("Add transactions and get personalized insights powered by AI")

    scenarios = detect_scenarios(assistant.transactions, assistant.config)
    if scenarios:
        with st.expander("🧭 Suggested focus"):
            for scenario in scenarios:
                st.markdown(f"**{scenario.replace('_', ' ')}**")
                st.code(build_scenario_prompt(scenario, assistant.transactions, assistant.config))

elif menu == "💾 Data":
    df = tx_to_df(assistant.transactions)
    if not df.empty:
        disp = df.copy()
        disp["date"] = disp["date"].dt.strftime("%Y-%m-%d").fillna("-")
        st.dataframe(disp, use_container_width=True)
        st.download_button("⬇ Download CSV", df.to_csv(index=False), file_name="transactions.csv")

    export = json.dumps(assistant.export_data(), indent=2, ensure_ascii=False)
    st.download_button("⬇ Export JSON", export,
                       file_name=f"finance-data-{date.today().isoformat()}.json", mime="application/json")

    uploaded = st.file_uploader("Import JSON", type="json")
    if uploaded is not None and st.button("Import"):
        try:
            assistant.import_data(json.loads(uploaded.getvalue()))
        except json.JSONDecodeError as e:
            st.error(f"Invalid file: {e}")

    stats = assistant.storage.stats()
    st.caption(f"{stats.transactions} transactions · {stats.goals} goals · "
               f"{stats.backups} backups · {stats.total_size:,} bytes")

    c1, c2, c3 = st.columns(3)
    if c1.button("Create backup"):
        assistant.create_backup()
    backups = assistant.storage.get_backups()
    if backups:
        choice = c2.selectbox("Backups", range(len(backups)),
                              format_func=lambda i: backups[i].get("backupDate", f"#{i}"))
        if c2.button("Restore"):
            assistant.restore_backup(choice)
    if c3.button("🗑 Clear all data"):
        assistant.clear_all_data()

show_notifications()
