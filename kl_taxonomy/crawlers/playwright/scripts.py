"""페이지 내부에서 실행하는 JavaScript 스니펫 모음.

모든 스니펫은 JSON 직렬화 가능한 값만 반환합니다.
"""

# window 상태 루트를 순환 참조 없이 복사
COLLECT_STATE = """
() => {
  const roots = ["__INITIAL_STATE__", "__PRELOADED_STATE__", "__NEXT_DATA__", "__NUXT__"];
  const out = {};
  const safeCopy = (value) => {
    const seen = new WeakSet();
    const text = JSON.stringify(value, (key, v) => {
      if (typeof v === "function") return undefined;
      if (v && typeof v === "object") {
        if (v === window || (typeof Node !== "undefined" && v instanceof Node)) return undefined;
        if (seen.has(v)) return undefined;
        seen.add(v);
      }
      return v;
    });
    return text === undefined ? null : JSON.parse(text);
  };
  for (const key of roots) {
    try {
      const value = window[key];
      if (value !== undefined && value !== null) out[key] = safeCopy(value);
    } catch (e) {
      out[key] = null;
    }
  }
  if (!out.__NEXT_DATA__) {
    const script = document.querySelector("script#__NEXT_DATA__");
    if (script) {
      try { out.__NEXT_DATA__ = JSON.parse(script.textContent || ""); } catch (e) { out.__NEXT_DATA__ = null; }
    }
  }
  return out;
}
"""

# 화면에 보이는 클릭 가능 요소 중 카테고리 id를 가진 것 (좌표 포함)
COLLECT_CLICK_CANDIDATES = """
() => {
  const clean = (v) => String(v || "").replace(/\\s+/g, " ").trim();
  const extractId = (el) => {
    for (const attr of ["data-val", "data-id", "data-value"]) {
      const v = clean(el.getAttribute(attr));
      if (/^\\d+$/.test(v)) return v;
    }
    const own = (el.id || "").match(/^cat_(\\d+)$/);
    if (own) return own[1];
    const href = el.getAttribute("href") || "";
    const path = href.match(/path=([^&#]+)/);
    if (path) {
      const parts = decodeURIComponent(path[1]).split(/[\\/,]/).filter(Boolean);
      if (parts.length) return parts[parts.length - 1];
    }
    const cat = href.match(/\\/c(\\d+)/);
    return cat ? cat[1] : "";
  };
  const out = [];
  for (const el of document.querySelectorAll("a, button, [role=button], li, div, span")) {
    const id = extractId(el);
    if (!id) continue;
    const name = clean(el.innerText || el.textContent);
    if (!name || name.length > 80) continue;
    const rect = el.getBoundingClientRect();
    if (!rect.width || !rect.height) continue;
    const style = window.getComputedStyle(el);
    if (style.visibility === "hidden" || style.display === "none") continue;
    out.push({ id, name, x: rect.left, y: rect.top, url: el.getAttribute("href") || "" });
  }
  return out;
}
"""

# 카테고리 선택 오버레이의 가장 오른쪽 열 링크
COLLECT_PICKER_COLUMN = """
() => {
  const clean = (v) => String(v || "").replace(/\\s+/g, " ").trim();
  const box = document.querySelector("#postad-category-select-box") || document;
  const cols = Array.from(box.querySelectorAll(".category-selection-col")).filter((col) => {
    const rect = col.getBoundingClientRect();
    return rect.width > 0 && rect.height > 0;
  });
  if (!cols.length) return [];
  const col = cols[cols.length - 1];
  return Array.from(col.querySelectorAll(".category-selection-list-item-link")).map((a) => {
    const href = a.getAttribute("href") || "";
    let id = clean(a.getAttribute("data-val") || a.getAttribute("data-id") || a.getAttribute("data-value"));
    if (!id) {
      const own = (a.id || "").match(/^cat_(\\d+)$/);
      if (own) id = own[1];
    }
    if (!id) {
      const cat = href.match(/\\/c(\\d+)/);
      if (cat) id = cat[1];
    }
    return { id, name: clean(a.innerText || a.textContent), url: href };
  }).filter((item) => item.id && item.name);
}
"""

# 폼 컨트롤 수집 (라벨 해석 포함)
COLLECT_FORM_CONTROLS = """
() => {
  const clean = (v) => String(v || "").replace(/\\s+/g, " ").trim();
  const textOf = (node) => node ? clean(node.textContent) : "";
  const labelOf = (el) => {
    const aria = clean(el.getAttribute("aria-label"));
    if (aria) return aria;
    const labelledBy = clean(el.getAttribute("aria-labelledby"));
    if (labelledBy) {
      const text = clean(labelledBy.split(" ").map((id) => textOf(document.getElementById(id))).join(" "));
      if (text) return text;
    }
    if (el.id) {
      const forLabel = document.querySelector(`label[for="${CSS.escape(el.id)}"]`);
      if (textOf(forLabel)) return textOf(forLabel);
    }
    const closest = el.closest("label");
    if (closest) {
      const copy = closest.cloneNode(true);
      copy.querySelectorAll("select, option").forEach((n) => n.remove());
      if (textOf(copy)) return textOf(copy);
    }
    const wrapper = el.closest(".formgroup, .form-group, .pstad-attrs, fieldset, div");
    if (wrapper) {
      const wrapperLabel = wrapper.querySelector("label, legend");
      if (textOf(wrapperLabel)) return textOf(wrapperLabel);
    }
    return clean(el.getAttribute("name") || el.id || el.getAttribute("data-testid"));
  };
  const isVisible = (el) => {
    const rect = el.getBoundingClientRect();
    const style = window.getComputedStyle(el);
    return rect.width > 0 && rect.height > 0 && style.visibility !== "hidden" && style.display !== "none";
  };
  const out = [];
  for (const el of document.querySelectorAll("select, input")) {
    const tag = el.tagName.toLowerCase();
    const type = tag === "input" ? clean(el.getAttribute("type") || "text").toLowerCase() : "";
    if (tag === "input" && !["text", "number", "tel"].includes(type)) continue;
    out.push({
      tag,
      name: el.getAttribute("name") || "",
      id: el.id || "",
      type,
      label: labelOf(el),
      visible: isVisible(el),
      required: Boolean(el.required) || el.getAttribute("aria-required") === "true",
      options: tag === "select"
        ? Array.from(el.options).map((o) => ({ value: o.value, label: clean(o.textContent) }))
        : [],
    });
  }
  return out;
}
"""

# 카테고리 id를 폼 필드에 주입하고 input/change 이벤트 발생
INJECT_CATEGORY_ID = """
(categoryId) => {
  const selectors = [
    "#categoryIdField",
    "input[name='categoryId']",
    "select[name='categoryId']",
    "input[id*='categoryId']",
    "select[id*='categoryId']",
    "input[id*='category']",
    "select[id*='category']",
  ];
  let touched = 0;
  for (const selector of selectors) {
    for (const el of document.querySelectorAll(selector)) {
      el.value = categoryId;
      el.dispatchEvent(new Event("input", { bubbles: true }));
      el.dispatchEvent(new Event("change", { bubbles: true }));
      touched += 1;
    }
    if (touched) break;
  }
  return touched > 0;
}
"""

# 1단계 폼(#postad-step1-frm)에 카테고리 경로를 채워 제출
SUBMIT_STEP1_FORM = """
({ parentCategoryId, categoryId }) => {
  const form = document.querySelector("#postad-step1-frm") || document.querySelector("form");
  if (!form) return false;
  const setField = (name, value) => {
    let input = form.querySelector(`[name='${name}']`);
    if (!input) {
      input = document.createElement("input");
      input.type = "hidden";
      input.name = name;
      form.appendChild(input);
    }
    input.value = value;
  };
  if (parentCategoryId) setField("parentCategoryId", parentCategoryId);
  setField("categoryId", categoryId);
  setField("submitted", "true");
  HTMLFormElement.prototype.submit.call(form);
  return true;
}
"""

# 광고 폼(#adForm)을 카테고리 변경 페이지로 제출
SUBMIT_AD_FORM_TO_SELECTION = """
(action) => {
  const form = document.querySelector("#adForm");
  if (!form) return false;
  form.setAttribute("action", action);
  form.setAttribute("method", "post");
  HTMLFormElement.prototype.submit.call(form);
  return true;
}
"""

# PostAdView 의 카테고리 변경 메서드 호출 (있을 때만)
OPEN_PICKER_VIA_VIEW = """
() => {
  const view = window.PostAdView || (window.Belen && window.Belen.PostAdView);
  if (!view) return false;
  for (const method of ["openCategorySelection", "changeCategory", "showCategorySelection"]) {
    if (typeof view[method] === "function") {
      try { view[method](); return true; } catch (e) { return false; }
    }
  }
  return false;
}
"""

# 속성(attribute) 컨트롤이 렌더링되었는지
HAS_EXTRA_SELECT = """
() => {
  const clean = (v) => String(v || "").replace(/\\s+/g, " ").trim().toLowerCase();
  for (const el of document.querySelectorAll("select, [role=combobox]")) {
    const key = clean((el.getAttribute("name") || "") + " " + (el.id || ""));
    if (key.includes("attributemap")) return true;
    const label = el.id ? document.querySelector(`label[for="${CSS.escape(el.id)}"]`) : null;
    const labelText = clean(label ? label.textContent : el.getAttribute("aria-label"));
    if (/\\bart\\b|zustand/.test(labelText)) return true;
    if (clean(el.textContent).startsWith("bitte wählen")) return true;
  }
  return false;
}
"""
