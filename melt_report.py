import pystache

from melt_config import VERSION, PROJECT_URL
from bisect_rustc import report_section
from format_case import FormatResult, FORMAT_RESULT_TEXT


TEMPLATE = pystache.parse('''\
Triaged with [icemelt]({{{projectUrl}}}). Steps performed:

- Reproduced: ✅
- Formatted: {{{formatted}}}
- Reduced: {{#reduced}}✅{{/reduced}}{{^reduced}}❌{{/reduced}}
- Bisected: {{#bisection}}✅{{/bisection}}{{^bisection}}❌{{/bisection}}

Lines: {{originalLines}} → {{finalLines}}
{{#haveSource}}

{{edited}}:
```{{language}}
{{{source}}}
```
{{/haveSource}}
{{#bisection}}

Regression in `{{start}}`{{#isRange}} .. `{{end}}`{{/isRange}}

{{{log}}}
{{/bisection}}

<details><summary>Details</summary>
<p>

Compiler version:
```
{{{compilerVersion}}}
```

icemelt version: v{{version}}

icemelt command line:

```sh
{{{commandLine}}}
```

@rustbot label +S-bug-has-mcve

Do you have feedback about this report? Please [file an issue]({{{projectUrl}}}/issues)!

</p>
</details>
''')


def edited_label(did_reduce, did_format):
    if did_reduce and did_format:
        return 'Reduced, formatted'
    elif did_reduce:
        return 'Reduced'
    return 'Formatted'


def bisection_context(bisection):
    if bisection is None:
        return None
    return {'start': bisection.regressed_start_version,
            'end': bisection.regressed_end_version,
            'isRange': (bisection.regressed_start_version !=
                        bisection.regressed_end_version),
            'log': report_section(bisection.raw_log)}


def render(result, bisection=None, did_reduce=None, format_result=None,
           compiler_version='<unknown>', command_line='', language='rust'):
    '''Render a Markdown report about a minimized case, ready to paste into
    an issue.'''

    if did_reduce is None:
        did_reduce = result.final_line_count < result.original_line_count
    did_format = format_result == FormatResult.changed
    formatted = FORMAT_RESULT_TEXT.get(format_result, '❌')
    context = {
        'projectUrl': PROJECT_URL,
        'formatted': formatted,
        'reduced': did_reduce,
        'originalLines': result.original_line_count,
        'finalLines': result.final_line_count,
        'haveSource': did_reduce or did_format,
        'edited': edited_label(did_reduce, did_format),
        'language': language,
        'source': result.final_source.decode(
            'utf-8', errors='replace').rstrip('\n'),
        'bisection': bisection_context(bisection),
        'compilerVersion': compiler_version,
        'version': VERSION,
        'commandLine': command_line,
    }
    return pystache.render(TEMPLATE, context)
