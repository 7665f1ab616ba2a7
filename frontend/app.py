# Streamlit operator console for the procurement API
import json
import os

import requests
import streamlit as st
from dotenv import load_dotenv

load_dotenv()

API = os.getenv("API_URL", "http://localhost:5000")

st.set_page_config(page_title="RFP Desk", layout="wide")
st.title("RFP Desk")


def api_get(path):
    r = requests.get(f"{API}{path}", timeout=30)
    return r.json() if r.ok else []


def show_error(resp):
    try:
        body = resp.json()
    except ValueError:
        st.error(resp.text)
        return
    st.error(body.get("error") or body.get("detail") or resp.text)
    if body.get("raw"):
        st.code(body["raw"])


def rfp_picker(label, key):
    rfps = api_get("/api/v1/rfps")
    rmap = {f"{x['id']} - {x.get('title', '')} ({x.get('status')})": x["id"] for x in rfps}
    sel = st.selectbox(label, options=list(rmap.keys()), key=key)
    return rmap.get(sel)


tabs = st.tabs(["Create RFP", "Vendors", "Send RFP", "Add proposal", "Compare"])

# Create RFP
with tabs[0]:
    st.header("Create RFP (from natural language)")
    prompt = st.text_area(
        "Describe procurement need:",
        "I need 20 laptops (16GB RAM) and 15 monitors 27-inch. Budget $50,000. "
        "Delivery within 30 days. Payment net 30. Warranty 12 months.",
        height=150,
    )
    if st.button("Structure with AI"):
        r = requests.post(f"{API}/api/v1/rfps/from-text", json={"text": prompt}, timeout=120)
        if r.ok:
            st.session_state["structured"] = r.json()
        else:
            show_error(r)

    structured = st.session_state.get("structured", {})
    title = st.text_input("Title", value=structured.get("title") or "")
    budget = st.number_input("Budget", min_value=0.0, value=float(structured.get("budget") or 0))
    currency = st.text_input("Currency", value=structured.get("currency") or "USD")
    deadline = st.date_input("Delivery deadline", value=None)
    if structured:
        st.json(structured)
    if st.button("Create RFP"):
        body = {
            "title": title,
            "description": prompt,
            "budget": budget or None,
            "currency": currency,
            "delivery_deadline": deadline.isoformat() if deadline else None,
            "structured_data": structured,
        }
        r = requests.post(f"{API}/api/v1/rfps", json=body, timeout=30)
        if r.ok:
            st.success(f"RFP {r.json()['id']} created")
            st.session_state.pop("structured", None)
        else:
            show_error(r)

# Vendors
with tabs[1]:
    st.header("Vendors")
    name = st.text_input("Name", value="Acme Co")
    email = st.text_input("Email", value="sales@acme.example")
    contact = st.text_input("Contact info")
    notes = st.text_area("Notes", height=80)
    if st.button("Add Vendor"):
        r = requests.post(
            f"{API}/api/v1/vendors",
            json={"name": name, "email": email, "contact_info": contact or None, "notes": notes or None},
            timeout=30,
        )
        if r.ok:
            st.success("Added vendor")
        else:
            show_error(r)
    st.dataframe(api_get("/api/v1/vendors"))

# Send RFP
with tabs[2]:
    st.header("Send RFP to vendors")
    rfp_id = rfp_picker("Select RFP", "send_rfp")
    vendors = api_get("/api/v1/vendors")
    vmap = {f"{v['id']} - {v['name']} <{v['email']}>": v["id"] for v in vendors}
    sel_vendors = st.multiselect("Vendors to send to", options=list(vmap.keys()))
    if st.button("Send"):
        if not rfp_id:
            st.error("Choose an RFP")
        else:
            resp = requests.post(
                f"{API}/api/v1/rfps/{rfp_id}/send",
                json={"vendor_ids": [vmap[k] for k in sel_vendors]},
                timeout=120,
            )
            if resp.ok:
                st.success(f"Sent to {resp.json()['sent_count']} of {len(sel_vendors)} vendors")
            else:
                show_error(resp)

# Add proposal: extract, review, save
with tabs[3]:
    st.header("Add vendor proposal")
    rfp_id = rfp_picker("RFP", "proposal_rfp")
    vendors = api_get("/api/v1/vendors")
    vmap = {f"{v['id']} - {v['name']}": v["id"] for v in vendors}
    vendor_label = st.selectbox("Vendor", options=list(vmap.keys()))
    body = st.text_area("Vendor reply", value="We can supply for $45000. Delivery 25 days. Warranty 12 months.")
    if st.button("Extract fields"):
        r = requests.post(
            f"{API}/api/v1/proposals/parse",
            json={"rfp_id": rfp_id, "vendor_text": body},
            timeout=120,
        )
        if r.ok:
            st.session_state["parsed"] = r.json()
        else:
            show_error(r)

    parsed = st.session_state.get("parsed")
    if parsed:
        edited = st.text_area("Review extracted fields (JSON)", json.dumps(parsed, indent=2), height=260)
        if st.button("Save proposal"):
            try:
                reviewed = json.loads(edited)
            except ValueError as e:
                st.error(f"Invalid JSON: {e}")
            else:
                r = requests.post(
                    f"{API}/api/v1/proposals",
                    json={
                        "rfp_id": rfp_id,
                        "vendor_id": vmap.get(vendor_label),
                        "raw_text": body,
                        "parsed_data": reviewed,
                    },
                    timeout=30,
                )
                if r.ok:
                    st.success(f"Proposal {r.json()['id']} saved")
                    st.session_state.pop("parsed", None)
                else:
                    show_error(r)

# Compare
with tabs[4]:
    st.header("Compare proposals for RFP")
    rfp_id = rfp_picker("RFP", "compare_rfp")
    if st.button("Compare"):
        resp = requests.get(f"{API}/api/v1/proposals/compare/{rfp_id}", timeout=180)
        if resp.ok:
            report = resp.json()
            rows = [
                {
                    "vendor": (p.get("vendor") or {}).get("name"),
                    "score": p["calculated_score"],
                    "price": p["score_breakdown"]["price"],
                    "delivery": p["score_breakdown"]["delivery"],
                    "warranty": p["score_breakdown"]["warranty"],
                    "completeness": p["score_breakdown"]["completeness"],
                    "total_price": p.get("total_price"),
                    "currency": p.get("currency"),
                }
                for p in sorted(report["proposals"], key=lambda p: -p["calculated_score"])
            ]
            st.dataframe(rows)
            rec = report["recommendation"]
            if not rec.get("available", True):
                st.warning(rec["reasoning"])
            else:
                st.subheader(f"Recommended vendor: {rec.get('recommended_vendor_id')}")
                st.write(rec["reasoning"])
                st.json(rec.get("pros_cons", {}))
        else:
            show_error(resp)
