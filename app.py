"""
Societrics Crisis Analyzer - Interactive Dashboard

Models system stress (theta = adjusted WSI / effective capacity) in
crisis scenarios, with external shocks and the three-phase SGT
intervention pathway, plus the Cheating Dilemma model.

Run with: streamlit run app.py
"""

from datetime import datetime, timezone

import streamlit as st
import plotly.graph_objects as go
import plotly.express as px
import pandas as pd

from societrics.config import (
    CRISIS_PRESETS,
    DEFAULT_PRESET,
    DILEMMA_PRESETS,
    FIELD_BOUNDS,
    CapacityScheme,
    DilemmaParams,
    EngineConfig,
    WEIGHT_SETS,
    ZoneScheme,
)
from societrics.dilemma import CheatingDilemmaSimulator
from societrics.engine import SimulationEngine
from societrics.exceptions import InvalidPreset
from societrics.export import dilemma_frame, event_log_lines, history_frame
from societrics.state import StateVector

# ── Page config ──────────────────────────────────────────────────────
st.set_page_config(
    page_title="Societrics Crisis Analyzer",
    layout="wide",
    initial_sidebar_state="expanded",
)

COLORS = px.colors.qualitative.Set2
ZONE_COLORS = {"green": "#2ca02c", "yellow": "#e3b505", "orange": "#ff7f0e", "red": "#d62728"}

# Common layout for all charts
CHART_THEME = dict(
    template="simple_white",
    paper_bgcolor="rgba(0,0,0,0)",
    plot_bgcolor="rgba(0,0,0,0)",
    font=dict(color="#262730"),
)


# ── Helper: build line chart ─────────────────────────────────────────
def line_chart(x, y, title, yaxis, color="#1f77b4", events=None, threshold=None):
    fig = go.Figure()
    fig.add_trace(
        go.Scatter(
            x=x, y=y, mode="lines", line=dict(color=color, width=2.5),
            hovertemplate="%{y:.3f}<extra></extra>",
        )
    )
    if threshold is not None:
        fig.add_hline(y=threshold, line_dash="dash", line_color="#d62728")
    if events:
        # Markers at the step of each shock / intervention, label on hover
        ev_x, ev_y, ev_text = [], [], []
        steps = list(x)
        for ev in events:
            if ev.step in steps:
                i = steps.index(ev.step)
                ev_x.append(ev.step)
                ev_y.append(y[i])
                ev_text.append(f"{ev.kind}: {ev.name}")
        if ev_x:
            fig.add_trace(
                go.Scatter(
                    x=ev_x, y=ev_y, mode="markers",
                    marker=dict(size=9, color="red", symbol="diamond",
                                line=dict(width=1, color="#333")),
                    text=ev_text,
                    hovertemplate="%{text}<extra></extra>",
                    showlegend=False,
                )
            )
    fig.update_layout(
        **CHART_THEME,
        title=dict(text=title, font=dict(size=14)),
        xaxis_title="Step", yaxis_title=yaxis, height=320,
        margin=dict(l=50, r=20, t=35, b=30),
        hovermode="x unified",
    )
    return fig


def multi_line(x, series_dict, title, yaxis, height=340):
    fig = go.Figure()
    for i, (name, vals) in enumerate(series_dict.items()):
        fig.add_trace(
            go.Scatter(
                x=x, y=vals, name=name, mode="lines",
                line=dict(color=COLORS[i % len(COLORS)], width=2),
            )
        )
    fig.update_layout(
        **CHART_THEME,
        title=dict(text=title, font=dict(size=14)),
        xaxis_title="Step", yaxis_title=yaxis, height=height,
        margin=dict(l=50, r=20, t=35, b=30),
        hovermode="x unified",
        legend=dict(orientation="h", yanchor="bottom", y=-0.35, font=dict(size=10)),
    )
    return fig


def radar_chart(state: StateVector, title):
    axes = {
        "Wealth": state.wealth, "Trust": state.trust, "Education": state.education,
        "Civilization": state.civilization, "Political": state.political_power,
        "Agency (P)": state.personal_agency,
    }
    fig = go.Figure(
        go.Scatterpolar(
            r=[v * 100 for v in axes.values()], theta=list(axes), fill="toself",
            line=dict(color="#6366f1"),
        )
    )
    fig.update_layout(
        **CHART_THEME,
        title=dict(text=title, font=dict(size=14)),
        polar=dict(radialaxis=dict(range=[0, 100])), height=300,
        margin=dict(l=40, r=40, t=40, b=20), showlegend=False,
    )
    return fig


# ── Sidebar: Engine settings ─────────────────────────────────────────
st.sidebar.header("Scenario")

preset_names = {p.name: p.id for p in CRISIS_PRESETS.values()}
default_name = CRISIS_PRESETS[DEFAULT_PRESET].name
preset_name = st.sidebar.selectbox(
    "Crisis Preset", list(preset_names), index=list(preset_names).index(default_name),
)
preset_id = preset_names[preset_name]
preset = CRISIS_PRESETS[preset_id]
st.sidebar.caption(f"{preset.region}: {preset.description}")

with st.sidebar.expander("Model Settings", expanded=False):
    weight_name = st.selectbox("WSI Weights", list(WEIGHT_SETS))
    capacity_scheme = st.radio(
        "Capacity Scheme", [s.value for s in CapacityScheme],
        help="multiplicative: SOC x trust x culture factors; additive: SOC + trust/culture bonuses",
    )
    zone_scheme = st.radio(
        "Zone Scheme", [s.value for s in ZoneScheme],
        help="one-sided: crisis at theta >= 1; elastic-middle: equilibrium band around theta = 1",
    )
    decay_uncovered = st.checkbox(
        "Decay fields not covered by the active phase", value=False,
    )

config = EngineConfig(
    weights=WEIGHT_SETS[weight_name],
    capacity_scheme=CapacityScheme(capacity_scheme),
    zone_scheme=ZoneScheme(zone_scheme),
    decay_uncovered_fields=decay_uncovered,
)

# Custom builder
custom_state = None
if preset_id == "custom":
    with st.sidebar.expander("Custom Scenario Builder", expanded=True):
        values = {}
        for name, (lo, hi) in FIELD_BOUNDS.items():
            default = preset.values[name]
            values[name] = st.slider(
                name.replace("_", " ").title(), float(lo), float(hi), float(default),
                step=0.005 if name == "soc" else 0.01, key=f"custom_{name}",
            )
        try:
            custom_state = StateVector.from_dict(values)
        except InvalidPreset as e:
            st.error(str(e))

with st.sidebar.expander("Playback", expanded=False):
    run_steps = st.slider("Steps per run", 1, 150, 25)
    max_time = st.slider("Maximum simulation length", 50, 300, 150)
    speed = st.slider("Animation delay (ms)", 0, 1000, 300, step=50)

settings_key = (preset_id, weight_name, capacity_scheme, zone_scheme, decay_uncovered,
                tuple(sorted(custom_state.as_dict().items())) if custom_state else None)

# ── Engine in session state ──────────────────────────────────────────
if st.session_state.get("settings_key") != settings_key:
    st.session_state.settings_key = settings_key
    st.session_state.engine = SimulationEngine(custom_state or preset_id, config=config)
    st.session_state.compare = None

engine: SimulationEngine = st.session_state.engine
compare: SimulationEngine = st.session_state.get("compare")

# ── Header ───────────────────────────────────────────────────────────
st.title("Societrics Crisis Analyzer")
st.markdown(
    "Confrontation analysis with external shocks and the three-phase SGT "
    "intervention pathway. Θ = adjusted WSI ÷ effective capacity; Θ > 1 "
    "means the system's absorptive capacity is exceeded."
)

# ── Controls ─────────────────────────────────────────────────────────
c1, c2, c3, c4, c5 = st.columns(5)
if c1.button("Step", use_container_width=True):
    engine.step()
    if compare is not None:
        compare.step()
if c2.button(f"Run {run_steps} steps", use_container_width=True):
    n = max(0, min(run_steps, max_time - engine.step_index))
    engine.run(n)
    if compare is not None:
        compare.run(n)
animate = c3.button("Animate", use_container_width=True)
if c4.button("Reset", use_container_width=True):
    engine.reset(custom_state or preset_id)
    st.session_state.compare = compare = None
compare_on = c5.toggle("Comparison", value=compare is not None)
if compare_on and compare is None:
    st.session_state.compare = compare = engine.clone()
elif not compare_on and compare is not None:
    st.session_state.compare = compare = None

target_name = "Scenario A"
if compare is not None:
    target_name = st.radio("Apply actions to", ["Scenario A", "Scenario B"], horizontal=True)
target = compare if target_name == "Scenario B" else engine

# External shocks
st.subheader("External Shocks")
shock_cols = st.columns(len(engine.shocks.ids()))
for col, shock in zip(shock_cols, engine.shocks):
    active = shock.id in target.active_shocks
    if col.button(shock.name, key=f"shock_{shock.id}", disabled=active,
                  help=shock.description, use_container_width=True):
        target.apply_shock(shock.id)
        st.rerun()

# Intervention phases
st.subheader("SGT Intervention Pathway")
phase_cols = st.columns(3)
for col, phase in zip(phase_cols, engine.phases):
    eligible = target.next_phase() == phase.id
    label = f"{phase.order}. {phase.name}"
    if target.phase == phase.id:
        label += " (active)"
    if col.button(label, key=f"phase_{phase.id}", disabled=not eligible,
                  help=phase.description, use_container_width=True):
        result = target.apply_phase(phase.id)
        if not result.ok:
            st.warning(result.message)
        st.rerun()

# Timed playback
if animate:
    placeholder = st.empty()

    def _show(record):
        placeholder.metric(
            f"Step {record.step}", f"Θ = {record.metrics.theta:.3f}", record.metrics.zone.label,
            delta_color="off",
        )
        if compare is not None:
            compare.step()
        return engine.step_index < max_time

    engine.play(max(0, max_time - engine.step_index), interval=speed / 1000, on_step=_show)

# ── Key metrics row ──────────────────────────────────────────────────
metrics = engine.current_metrics()
zone = metrics.zone
m1, m2, m3, m4, m5, m6 = st.columns(6)
m1.metric("Θ (Strain Ratio)", f"{metrics.theta:.3f}", zone.label, delta_color="off")
m2.metric("WSI", f"{metrics.wsi:.3f}", f"adj. {metrics.adjusted_wsi:.3f}", delta_color="off")
m3.metric("Effective Capacity", f"{metrics.effective_capacity:.4f}")
m4.metric("TPC Score", f"{metrics.tpc_score:.2f}/7", f"×{metrics.tpc_modifier:.3f}", delta_color="off")
m5.metric("W_acc", f"{metrics.dual_pull_balance:+.3f}",
          "inverted" if metrics.signal_inverted else "aligned", delta_color="off")
m6.metric("φ (SIP)", f"{metrics.signal_multiplier:+.3f}")
st.caption(f"Step {engine.step_index} · Phase: {engine.phase or 'none'} · {zone.description}")

history = engine.history()
frame = history_frame(history)

# ── Tabs ─────────────────────────────────────────────────────────────
tab_system, tab_actors, tab_equilibrium, tab_stats, tab_dilemma, tab_method = st.tabs(
    ["System", "Actors", "Equilibrium", "Statistics & Export", "Cheating Dilemma", "Methodology"]
)

# ── TAB: System ──────────────────────────────────────────────────────
with tab_system:
    if frame.empty:
        st.info("Step or run the simulation to see the trajectory.")
    else:
        st.plotly_chart(
            line_chart(
                frame["step"], frame["theta"], "Θ Strain Ratio", "Θ",
                color=ZONE_COLORS.get(zone.color, "#d62728"),
                events=engine.events(), threshold=1.0,
            ),
            use_container_width=True,
        )
        if compare is not None and compare.history():
            cframe = history_frame(compare.history())
            st.plotly_chart(
                multi_line(
                    frame["step"],
                    {"Scenario A": frame["theta"], "Scenario B": cframe["theta"]},
                    "Θ Comparison", "Θ",
                ),
                use_container_width=True,
            )
        col1, col2 = st.columns(2)
        with col1:
            st.plotly_chart(
                multi_line(
                    frame["step"],
                    {"WSI": frame["wsi"], "Adjusted WSI": frame["adjusted_wsi"]},
                    "Weight Shift Index", "Index",
                ),
                use_container_width=True,
            )
            st.plotly_chart(
                multi_line(
                    frame["step"],
                    {"Trust": frame["trust"], "Wealth": frame["wealth"],
                     "Education": frame["education"], "Agency (P)": frame["personal_agency"]},
                    "Fundamentals", "Level",
                ),
                use_container_width=True,
            )
        with col2:
            st.plotly_chart(
                line_chart(
                    frame["step"], frame["effective_capacity"],
                    "Effective Capacity", "Capacity", color="#2ca02c",
                    events=engine.events(),
                ),
                use_container_width=True,
            )
            st.plotly_chart(
                multi_line(
                    frame["step"],
                    {"W_acc": frame["w_acc"], "φ": frame["phi"]},
                    "Dual Pull & Signal Multiplier", "Value",
                ),
                use_container_width=True,
            )

    st.plotly_chart(radar_chart(engine.current_state(), "Current State Profile"),
                    use_container_width=True)

# ── TAB: Actors ──────────────────────────────────────────────────────
with tab_actors:
    p1, p2, p3 = st.columns(3)
    for col, (name, value) in zip((p1, p2, p3), metrics.payoffs.items()):
        col.metric(f"{name.title()} Payoff", f"{value:+.2f}")
    if not frame.empty:
        st.plotly_chart(
            multi_line(
                frame["step"],
                {name.title(): frame[f"{name}_payoff"] for name in metrics.payoffs},
                "Actor Payoffs", "Payoff",
            ),
            use_container_width=True,
        )
        st.plotly_chart(
            multi_line(
                frame["step"],
                {"Social Pressure (S)": frame["social_pressure"],
                 "Rigidity (R)": frame["rigidity"],
                 "Population Exit": frame["population_exit_rate"]},
                "Resistance & Exit", "Level",
            ),
            use_container_width=True,
        )

# ── TAB: Equilibrium ─────────────────────────────────────────────────
with tab_equilibrium:
    report = engine.analyze()
    e1, e2 = st.columns(2)
    with e1:
        st.subheader("Nash (Classical Game Theory)")
        st.markdown(f"**Predicted strategy:** {report.static_prediction}")
        st.markdown(f"**Predicted outcome:** {report.static_outcome}")
        st.caption("Maximizes individual utility, ignores system cost.")
    with e2:
        st.subheader("Societrics Equilibrium (σₑ)")
        st.markdown(f"**Predicted strategy:** {report.model_label}")
        st.markdown(f"**Predicted outcome:** {report.model_outcome}")
        cond = report.conditions
        st.caption(
            f"Moral {'✓' if cond.moral else '✗'} · Strategic {'✓' if cond.strategic else '✗'} · "
            f"Structural {'✓' if cond.structural else '✗'} · Θ basis {report.theta_basis:.3f}"
        )
    st.markdown(
        f"Cooperate payoff **{report.cooperate_payoff:.1f}** vs effective defect payoff "
        f"**{report.defect_payoff:.1f}**"
    )

# ── TAB: Statistics & Export ─────────────────────────────────────────
with tab_stats:
    stats = engine.statistics()
    if stats is None:
        st.info("No history yet.")
    else:
        s1, s2, s3, s4 = st.columns(4)
        s1.metric("Mean Θ", f"{stats.mean_theta:.3f}")
        s2.metric("Max / Min Θ", f"{stats.max_theta:.3f}", f"min {stats.min_theta:.3f}",
                  delta_color="off")
        s3.metric("Steps in Crisis", stats.steps_in_crisis)
        s4.metric("Trust Change", f"{stats.trust_change_pp:+.1f}pp")
        s5, s6, s7, _ = st.columns(4)
        s5.metric("Wealth Change", f"{stats.wealth_change_pct:+.1f}%")
        s6.metric("Interventions", stats.interventions)
        s7.metric("Shocks", stats.shocks)

        if engine.events():
            st.subheader("Event Log")
            st.dataframe(
                pd.DataFrame([e.__dict__ for e in engine.events()]),
                hide_index=True, use_container_width=True,
            )

        generated = datetime.now(timezone.utc).isoformat()
        header = event_log_lines(preset.name, engine.events(), generated)
        csv = "\n".join(header) + "\n\n" + frame.to_csv(index=False, float_format="%.4f")
        st.download_button(
            "Export Data (CSV)", csv,
            file_name=f"sgt_crisis_{preset_id}_{engine.step_index}.csv",
            mime="text/csv",
        )
        st.dataframe(frame, hide_index=True, use_container_width=True)


# ── TAB: Cheating Dilemma ────────────────────────────────────────────
@st.cache_data
def run_dilemma(params_dict):
    results = CheatingDilemmaSimulator(DilemmaParams(**params_dict)).run()
    return dilemma_frame(results), results.equilibrium_type, results.nash_prediction, \
        results.sgt_prediction


with tab_dilemma:
    st.markdown(
        "Nash vs Societrics equilibrium: how system stability redefines rationality. "
        "Cheating pays a short-term premium, but erodes trust and education until Θ > 1."
    )
    dp_name = st.selectbox("Dilemma Preset", list(DILEMMA_PRESETS), index=1)
    dp = DILEMMA_PRESETS[dp_name]
    d1, d2, d3 = st.columns(3)
    cheating_rate = d1.slider("Cheating Rate (%)", 0, 60, int(dp.cheating_rate * 100))
    time_steps = d2.slider("Time Steps", 10, 200, dp.time_steps)
    soc_limit = d3.slider("SOC Limit", 0.05, 0.30, dp.soc_limit, step=0.01)
    d4, d5, d6 = st.columns(3)
    trust_decay = d4.slider("Trust Decay", 0.0, 0.10, dp.trust_decay, step=0.005)
    edu_decay = d5.slider("Education Decay", 0.0, 0.10, dp.education_decay, step=0.005)
    cost_mult = d6.slider("System Cost Multiplier", 0.0, 10.0, dp.system_cost_multiplier, step=0.5)

    dframe, eq_type, nash, sgt = run_dilemma(dict(
        cheating_rate=cheating_rate / 100, time_steps=time_steps, soc_limit=soc_limit,
        trust_decay=trust_decay, education_decay=edu_decay, system_cost_multiplier=cost_mult,
    ))
    final_theta = dframe["theta"].iloc[-1]
    k1, k2, k3 = st.columns(3)
    k1.metric("Θ (final)", f"{final_theta:.3f}", eq_type.upper(), delta_color="off")
    k2.metric("Trust Level", f"{dframe['trust'].iloc[-1] * 100:.0f}%")
    k3.metric("Education Quality", f"{dframe['education'].iloc[-1] * 100:.0f}%")
    n1, n2 = st.columns(2)
    n1.markdown(f"**Nash prediction:** {nash}")
    n2.markdown(f"**Societrics prediction:** {sgt}")

    st.plotly_chart(
        line_chart(dframe["time"], dframe["theta"], "Θ over Time", "Θ",
                   color="#d62728", threshold=1.0),
        use_container_width=True,
    )
    st.plotly_chart(
        multi_line(
            dframe["time"],
            {"Honest": dframe["honest_payoff"], "Cheat (effective)": dframe["cheat_payoff"]},
            "Effective Payoffs", "Payoff",
        ),
        use_container_width=True,
    )
    st.download_button(
        "Export Dilemma Data (CSV)", dframe.to_csv(index=False, float_format="%.4f"),
        file_name="sgt_cheating_dilemma.csv", mime="text/csv",
    )

# ── TAB: Methodology ─────────────────────────────────────────────────
with tab_method:
    st.header("Model Structure")
    st.markdown("""
1. **Threshold Θ** = WSI × TPC modifier ÷ effective SOC
2. **WSI**: weighted average of wealth, trust, religion, civilization, education, political power
3. **TPC** = 1 + 6 × (0.35·T + 0.35·P + 0.30·C), modifier = 0.8 + 0.4 × (TPC − 1)/6
4. **Dual Pull**: W_acc = (T + P + C) − (R + S)
5. **SIP Trap**: φ(W_acc) = 2σ(2·W_acc) − 1 flips payoff interpretation when acceptance collapses
6. **Societrics equilibrium** needs moral (W_acc ≈ 1), strategic (no profitable defection)
   and structural (|ΔC| ≤ SOC, i.e. Θ ≤ 1) conditions
""")
    st.header("Intervention Pathway")
    st.markdown("""
1. **Circuit Breaker**: stop the R + S feedback loop
2. **Structural Floor**: rebuild SOC capacity
3. **Incentive Engine**: empower P, restore trust

Phases must be applied in order and cannot be repeated.
""")
    st.header("Known Limitations")
    st.markdown("""
- Illustrative model: no claim of predictive or statistical validity
- Deterministic, no noise; the engine never converges on its own
- Presets are stylized, not calibrated country data
""")

st.divider()
st.caption(
    "Societrics Labs · Interactive multi-agent systems & crisis simulations."
)
