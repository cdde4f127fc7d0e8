"""Built-in widget markup served when no asset directory is configured."""

CARD_WIDGET_URI = "ui://widget/card.html"
COUNTER_WIDGET_URI = "ui://widget/counter.html"

CARD_WIDGET_HTML = """<div id="card-root"></div>
<script type="module">
  const output = window.openai?.toolOutput ?? {};
  const root = document.getElementById("card-root");
  const title = document.createElement("h2");
  title.textContent = output.title ?? "";
  const body = document.createElement("p");
  body.textContent = output.body ?? "";
  root.append(title, body);
</script>
"""

COUNTER_WIDGET_HTML = """<div id="counter-root"></div>
<script type="module">
  const output = window.openai?.toolOutput ?? {};
  document.getElementById("counter-root").textContent = `Count: ${output.count ?? 0}`;
</script>
"""

BUILTIN_WIDGETS = {
    CARD_WIDGET_URI: CARD_WIDGET_HTML,
    COUNTER_WIDGET_URI: COUNTER_WIDGET_HTML,
}
