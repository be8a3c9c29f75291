"""kleinanzeigen 페이지 HTML 조각 (파싱 Unit 테스트용)

실제 페이지 구조를 필요한 만큼만 줄인 샘플입니다.
"""

CATEGORIES_PAGE = """
<html><body><main>
<ul>
  <li class="l-container-row">
    <h2><a href="/s-auto-rad-boot/c210">Auto, Rad &amp; Boot</a></h2>
    <ul>
      <li><a href="/s-autos/c216">Autos</a></li>
      <li><a href="/s-autoteile-reifen/c223">Autoteile &amp; Reifen</a></li>
      <li><a href="/s-hilfe.html">Hilfe</a></li>
    </ul>
  </li>
  <li class="l-container-row">
    <h2><a href="/s-elektronik/c161">Elektronik</a></h2>
    <ul>
      <li><a href="/s-audio-hifi/c172">Audio &amp; Hifi</a></li>
    </ul>
  </li>
  <li class="l-container-row">
    <h2><a href="/s-ohne-id.html">Ohne Kategorie</a></h2>
  </li>
</ul>
</main></body></html>
"""

LISTING_PAGE = """
<html><body>
<aside>
  <section>
    <h3>Kategorien</h3>
    <ul class="browsebox-itemlist">
      <li><a href="/s-kategorien.html">Alle Kategorien</a></li>
      <li><a href="/s-autos/c216">Autos</a></li>
      <li><a href="/s-autoteile-reifen/c223">Autoteile &amp; Reifen</a></li>
      <li><a href="/s-autos/c216">Autos</a></li>
      <li><a href="/s-auto-rad-boot/c210" class="icon-close">x</a></li>
    </ul>
  </section>
  <section>
    <h3>Preis</h3>
    <ul class="browsebox-itemlist">
      <li><a href="/s-preis:0:100/c210">bis 100</a></li>
    </ul>
  </section>
</aside>
</body></html>
"""

LISTING_PAGE_WITHOUT_SECTION = """
<html><body>
<ul class="browsebox-itemlist">
  <li><a href="/s-boote/c211">Boote &amp; Bootszubehör</a></li>
</ul>
</body></html>
"""

LISTING_DOM_PAGE = """
<html><body>
<section>
  <h2>Kategorien</h2>
  <a href="/p-kategorie-aendern.html?path=161/172">Audio &amp; Hifi</a>
  <a href="/p-kategorie-aendern.html?path=161">Elektronik</a>
  <a href="/s-elektronik/handy-telefon/c161+elektronik.art_s:handy">Handy &amp; Telefon</a>
  <a href="/s-elektronik/c161">Alle Kategorien</a>
  <a href="/s-sonstiges/c999">Fremd</a>
</section>
</body></html>
"""

SELECTION_PAGE = """
<html><body>
<script>
  CategorySelectView.init({
    el: "#cat",
    categoryTree: {"id": "161", "name": "Elektronik", "children": [
      {"id": "172", "name": "Audio & Hifi \\"Pro\\"", "children": []},
      {"id": "173", "name": "Handy & Telefon", "children": []}
    ]}
  });
</script>
<a href="/p-kategorie-aendern.html?path=161/172">Audio &amp; Hifi</a>
<a href="/p-kategorie-aendern.html?path=161/173">Handy &amp; Telefon</a>
<a href="/p-kategorie-aendern.html?path=161/173/280">Zubehör</a>
<a href="/p-kategorie-aendern.html?path=161">Elektronik</a>
</body></html>
"""

TREE_DOM_PAGE = """
<html><body><main>
<ul class="treelist">
  <li><a href="/s-elektronik/c161">Elektronik</a>
    <ul>
      <li><a href="/s-audio-hifi/c172">Audio &amp; Hifi</a></li>
      <li><a href="/s-handy-telefon/c173">Handy &amp; Telefon</a>
        <ul><li><a href="/s-zubehoer/c280">Zubehör</a></li></ul>
      </li>
    </ul>
  </li>
  <li><a href="/s-jobs/c102">Jobs</a></li>
</ul>
</main></body></html>
"""

BLOCKED_PAGE = "<html><head><title>Just a moment...</title></head><body>Verify you are human</body></html>"
