import pandas as pd
import plotly.express as px
import streamlit as st
from streamlit_autorefresh import st_autorefresh

from dashboard.client import DEFAULT_BACKEND_URL, MonitorClient, condition_badge, history_rows

st.set_page_config(page_title="Plant Monitor Dashboard", layout="wide")

st.title("Plant Monitor")
st.caption("Soil moisture, light level, device presence and alert cooldown")

with st.sidebar:
    st.header("Settings")
    backend_url = st.text_input("Backend API URL", value=DEFAULT_BACKEND_URL)
    device_filter = st.text_input("Device ID (blank for all)", value="").strip() or None
    auto_refresh = st.checkbox("Auto refresh", value=True)
    refresh_seconds = st.slider("Refresh interval (seconds)", min_value=5, max_value=60, value=10, step=5)

if auto_refresh:
    st_autorefresh(interval=refresh_seconds * 1000, key="plant-refresh")

client = MonitorClient(backend_url)

_, health_error = client.health()
if health_error:
    st.error(f"Backend unavailable: {health_error}")
    st.stop()

st.subheader("Latest Reading")
latest_payload, latest_error = client.latest(device_filter)
if latest_error:
    st.warning("No sensor records yet. POST readings to /api/readings.")
else:
    latest = latest_payload["data"]
    m1, m2, m3 = st.columns(3)
    m1.metric("Soil Moisture", latest["soilValue"], condition_badge(latest["soilCondition"]))
    m2.metric("Light Level", latest["ldrValue"], condition_badge(latest["lightCondition"]))
    m3.metric("Received", pd.to_datetime(latest["receivedAt"]).strftime("%H:%M:%S"), latest["deviceId"])

st.subheader("Devices")
devices_payload, devices_error = client.devices()
if devices_error:
    st.warning(f"Devices unavailable: {devices_error}")
else:
    devices = devices_payload.get("items", [])
    if not devices:
        st.info("No devices have reported yet")
    else:
        table = pd.DataFrame(devices)[
            ["deviceId", "status", "lastSeenAt", "secondsSinceLastSeen", "totalReadingCount"]
        ]
        st.dataframe(table, use_container_width=True, hide_index=True)

st.subheader("Alerts")
alert_payload, alert_error = client.alert_state()
if alert_error:
    st.warning(f"Alert state unavailable: {alert_error}")
else:
    a1, a2, a3 = st.columns(3)
    a1.metric("Alerts sent", alert_payload["alertsDispatched"])
    a2.metric("Cooldown left", f"{alert_payload['cooldownRemainingSeconds'] / 60:.1f} min")
    a3.metric("Light alerts", "muted (night)" if alert_payload["isNight"] else "active")

st.subheader("Sensor Trends")
history_payload, history_error = client.history(limit=240, device_id=device_filter)
if history_error:
    st.warning(f"History unavailable: {history_error}")
else:
    rows = history_rows(history_payload)
    if not rows:
        st.info("No historical data yet")
    else:
        df = pd.DataFrame(rows)
        df["receivedAt"] = pd.to_datetime(df["receivedAt"])

        fig_soil = px.line(df, x="receivedAt", y="soilValue", color="deviceId", title="Soil Moisture (raw)")
        fig_light = px.line(df, x="receivedAt", y="ldrValue", color="deviceId", title="Light Level (raw)")

        c1, c2 = st.columns(2)
        c1.plotly_chart(fig_soil, use_container_width=True)
        c2.plotly_chart(fig_light, use_container_width=True)
