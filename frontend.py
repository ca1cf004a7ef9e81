CONDITIONS = [
    {
        "code": "DF",
        "title": "Dominant Follicle (DF)",
        "definition": (
            "A single follicle has grown significantly larger than the others, "
            "typically over 10mm in diameter, and is expected to rupture during ovulation."
        ),
        "significance": [
            "A key sign of a healthy, ovulatory cycle.",
            "Crucial marker for monitoring fertility treatments.",
            "The size and growth rate are essential metrics for prediction.",
        ],
    },
    {
        "code": "Normal",
        "title": "Normal Ovarian Function",
        "definition": (
            "A typical number of small to medium-sized healthy follicles, without a "
            "clear, significantly enlarged dominant follicle at the current scan stage."
        ),
        "significance": [
            "Represents typical ovarian morphology and function.",
            "Follicle counts and sizes fall within expected physiological ranges.",
            "A healthy baseline for assessing overall reproductive potential.",
        ],
    },
    {
        "code": "PCO",
        "title": "Polycystic Ovaries (PCO)",
        "definition": (
            "The ovary is enlarged and contains 12 or more follicles measuring 2-9mm, "
            "typically arranged peripherally ('string of pearls' sign)."
        ),
        "significance": [
            "One of the diagnostic criteria for Polycystic Ovary Syndrome (PCOS).",
            "Often associated with anovulation and hormonal imbalances.",
            "Requires careful monitoring and clinical correlation.",
        ],
    },
]


def _condition_card(condition):
    items = "".join(f"<li>{item}</li>" for item in condition["significance"])
    return f"""
      <article class="card condition">
        <h3>{condition['title']}</h3>
        <p><strong>Definition:</strong> {condition['definition']}</p>
        <h4>Significance</h4>
        <ul>{items}</ul>
      </article>"""


UI_HTML = """
<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>OvaQuick</title>
  <style>
    :root {
      --bg: #fdf6f9;
      --card: #ffffff;
      --text: #2a1b24;
      --muted: #6b5563;
      --line: #efdbe5;
      --accent: #ec4899;
      --accent-2: #a855f7;
      --danger: #b42318;
    }
    * { box-sizing: border-box; }
    body {
      margin: 0;
      font-family: "Segoe UI", Tahoma, Geneva, Verdana, sans-serif;
      color: var(--text);
      background:
        radial-gradient(circle at 0% 0%, #fce7f3 0, transparent 36%),
        radial-gradient(circle at 100% 100%, #f3e8ff 0, transparent 30%),
        var(--bg);
      min-height: 100vh;
      padding: 24px;
    }
    header {
      max-width: 1024px;
      margin: 0 auto 16px;
      display: flex;
      justify-content: space-between;
      align-items: center;
      flex-wrap: wrap;
      gap: 8px;
    }
    header strong { font-size: 1.4rem; color: var(--accent); }
    nav { display: flex; gap: 8px; flex-wrap: wrap; }
    nav button {
      border: 0;
      background: none;
      color: var(--muted);
      font-weight: 600;
      cursor: pointer;
      padding: 8px 10px;
    }
    nav button.active { color: var(--accent); }
    .wrap {
      max-width: 1024px;
      margin: 0 auto;
      display: grid;
      gap: 16px;
    }
    .page { display: none; gap: 16px; }
    .page.active { display: grid; }
    .card {
      background: var(--card);
      border: 1px solid var(--line);
      border-radius: 14px;
      padding: 18px;
      box-shadow: 0 8px 20px rgba(17, 24, 39, 0.05);
    }
    .hero {
      background: linear-gradient(135deg, var(--accent), var(--accent-2));
      color: white;
    }
    .hero p { color: rgba(255, 255, 255, 0.9); }
    h1 { margin: 0 0 8px; font-size: 1.8rem; }
    h2 { margin: 0 0 8px; font-size: 1.5rem; }
    p { margin: 0; color: var(--muted); }
    .condition h3 { margin: 0 0 8px; color: var(--accent); }
    .condition h4 { margin: 12px 0 4px; }
    .condition ul { margin: 0; color: var(--muted); }
    .steps {
      display: grid;
      grid-template-columns: repeat(auto-fit, minmax(220px, 1fr));
      gap: 12px;
    }
    .grid {
      display: grid;
      grid-template-columns: repeat(auto-fit, minmax(280px, 1fr));
      gap: 12px;
      margin-top: 14px;
    }
    .field { display: grid; gap: 8px; }
    label { font-weight: 600; font-size: 0.92rem; }
    input[type="file"], .btn.block { width: 100%; }
    .btn {
      border: 0;
      border-radius: 10px;
      background: linear-gradient(135deg, var(--accent), var(--accent-2));
      color: white;
      font-weight: 700;
      padding: 11px 14px;
      cursor: pointer;
      transition: transform 0.15s ease;
    }
    .btn.light { background: white; color: var(--accent); margin-top: 14px; }
    .btn:hover { transform: translateY(-1px); }
    .btn:disabled { opacity: 0.6; cursor: wait; transform: none; }
    .status {
      margin-top: 10px;
      font-size: 0.92rem;
      color: var(--muted);
      min-height: 20px;
    }
    .img-card {
      border: 1px solid var(--line);
      border-radius: 10px;
      padding: 8px;
      background: #fffbfd;
      min-height: 260px;
    }
    .img-card strong { display: block; margin-bottom: 6px; font-size: 0.9rem; }
    .img-card img {
      width: 100%;
      height: 220px;
      border-radius: 6px;
      display: block;
      object-fit: contain;
      background: #fdf2f8;
    }
    .bars { display: grid; gap: 10px; margin-top: 12px; }
    .bar-row { display: grid; grid-template-columns: 110px 1fr 70px; gap: 8px; align-items: center; }
    .bar-track { background: #fdf2f8; border-radius: 999px; height: 14px; overflow: hidden; }
    .bar-fill { background: var(--accent); height: 100%; }
    .modal {
      position: fixed;
      inset: 0;
      background: rgba(0, 0, 0, 0.5);
      display: none;
      align-items: center;
      justify-content: center;
      padding: 16px;
    }
    .modal.open { display: flex; }
    .modal .card { max-width: 420px; width: 100%; }
    .modal h3 { margin: 0 0 8px; color: var(--danger); }
  </style>
</head>
<body>
  <header>
    <strong>OvaQuick</strong>
    <nav id="nav">
      <button data-page="home" class="active">Home</button>
      <button data-page="about">About OvaQuick</button>
      <button data-page="conditions">Conditions Explained</button>
      <button data-page="analysis" class="btn">Start Analysis</button>
    </nav>
  </header>

  <main class="wrap">
    <section id="page-home" class="page active">
      <div class="card hero">
        <h1>Clarity in Ovarian Health</h1>
        <p>
          OvaQuick analyzes ovarian ultrasound images and identifies key follicular
          conditions: Dominant Follicle, Normal, and PCO.
        </p>
        <button class="btn light" data-goto="analysis">Run Your Analysis Now &rarr;</button>
      </div>
    </section>

    <section id="page-about" class="page">
      <div class="card">
        <h2>How OvaQuick Works</h2>
        <p>A hosted model classifies the scan and highlights the regions behind its decision.</p>
      </div>
      <div class="steps">
        <div class="card"><h3>1. Upload</h3><p>Select an ovarian ultrasound image.</p></div>
        <div class="card"><h3>2. AI Analysis</h3><p>The image is sent to the hosted classifier.</p></div>
        <div class="card"><h3>3. Rapid Diagnosis</h3><p>Each condition gets a confidence score and a Grad-CAM heatmap.</p></div>
      </div>
      <button class="btn" data-goto="conditions">Learn more about the conditions we detect &rarr;</button>
    </section>

    <section id="page-conditions" class="page">
      <div class="card">
        <h2>Key Ovarian Conditions</h2>
        <p>OvaQuick reports a probability for each of the following classifications.</p>
      </div>
      __CONDITIONS__
    </section>

    <section id="page-analysis" class="page">
      <div class="card">
        <h2>OvaQuick AI Analysis</h2>
        <p>Upload an ultrasound image. The model returns class probabilities and a Grad-CAM heatmap.</p>

        <div class="grid">
          <div class="field">
            <label for="file">Ultrasound image</label>
            <input id="file" name="file" type="file" accept="image/*" />
            <div class="img-card">
              <strong>Uploaded image</strong>
              <img id="preview" alt="Uploaded preview" hidden />
            </div>
            <button id="runBtn" class="btn block" type="button" disabled>Upload &amp; Predict</button>
            <div id="status" class="status"></div>
          </div>
          <div class="img-card">
            <strong>Grad-CAM heatmap</strong>
            <img id="heatmap" alt="Grad-CAM heatmap" hidden />
          </div>
        </div>
      </div>

      <div class="card" id="resultsCard" hidden>
        <h2>Prediction (%)</h2>
        <div id="bars" class="bars"></div>
      </div>
    </section>
  </main>

  <div id="modal" class="modal" role="dialog">
    <div class="card">
      <h3 id="modalTitle">Analysis failed</h3>
      <p id="modalBody"></p>
      <button id="modalClose" class="btn block light" type="button">OK, Got It</button>
    </div>
  </div>

  <script>
    const fileInput = document.getElementById("file");
    const runBtn = document.getElementById("runBtn");
    const statusEl = document.getElementById("status");
    const preview = document.getElementById("preview");
    const heatmap = document.getElementById("heatmap");
    const resultsCard = document.getElementById("resultsCard");
    const bars = document.getElementById("bars");
    const modal = document.getElementById("modal");

    function navigate(pageId) {
      document.querySelectorAll(".page").forEach((el) => {
        el.classList.toggle("active", el.id === `page-${pageId}`);
      });
      document.querySelectorAll("#nav button").forEach((el) => {
        el.classList.toggle("active", el.dataset.page === pageId);
      });
      window.scrollTo({ top: 0, behavior: "smooth" });
    }

    document.querySelectorAll("[data-page], [data-goto]").forEach((el) => {
      el.addEventListener("click", () => navigate(el.dataset.page || el.dataset.goto));
    });

    function openModal(title, body) {
      document.getElementById("modalTitle").textContent = title;
      document.getElementById("modalBody").textContent = body;
      modal.classList.add("open");
    }

    document.getElementById("modalClose").addEventListener("click", () => {
      modal.classList.remove("open");
    });

    function setImage(img, src) {
      img.hidden = !src;
      if (src) img.src = src;
    }

    function render(view) {
      setImage(preview, view.preview);
      runBtn.disabled = !view.submit_enabled;
      runBtn.textContent = view.state === "loading" ? "Processing..." : "Upload & Predict";

      if (view.state === "success" || view.predictions.length > 0) {
        setImage(heatmap, view.heatmap_url);
        bars.innerHTML = "";
        view.predictions.forEach((p) => {
          const row = document.createElement("div");
          row.className = "bar-row";
          const name = document.createElement("span");
          name.textContent = p.label;
          const track = document.createElement("div");
          track.className = "bar-track";
          const fill = document.createElement("div");
          fill.className = "bar-fill";
          fill.style.width = `${Math.min(100, Math.max(0, p.probability * 100))}%`;
          track.appendChild(fill);
          const pct = document.createElement("span");
          pct.textContent = p.percent;
          row.append(name, track, pct);
          bars.appendChild(row);
        });
        resultsCard.hidden = view.predictions.length === 0;
      } else {
        setImage(heatmap, "");
        resultsCard.hidden = true;
      }
    }

    async function call(path, options) {
      const res = await fetch(path, { credentials: "same-origin", ...options });
      const view = await res.json();
      render(view);
      return { ok: res.ok, view };
    }

    fileInput.addEventListener("change", async () => {
      const formData = new FormData();
      if (fileInput.files && fileInput.files.length > 0) {
        formData.append("file", fileInput.files[0]);
      }
      statusEl.textContent = "";
      await call("/analysis/file", { method: "POST", body: formData });
    });

    runBtn.addEventListener("click", async () => {
      runBtn.disabled = true;
      runBtn.textContent = "Processing...";
      statusEl.textContent = "Running prediction...";
      try {
        const { ok, view } = await call("/analysis/submit", { method: "POST" });
        if (!ok) {
          statusEl.textContent = "";
          openModal("Analysis failed", view.error || "Request failed");
          return;
        }
        statusEl.textContent = "Done.";
      } catch (err) {
        statusEl.textContent = "";
        openModal("Analysis failed", err.message || "Unexpected error");
        runBtn.disabled = false;
        runBtn.textContent = "Upload & Predict";
      }
    });

    call("/analysis", { method: "GET" });
  </script>
</body>
</html>
""".replace("__CONDITIONS__", "".join(_condition_card(c) for c in CONDITIONS))
